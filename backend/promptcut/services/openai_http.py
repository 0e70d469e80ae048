"""Shared helpers for calling the OpenAI HTTP API."""
from typing import Dict, List

import httpx


def auth_headers(api_key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def extract_error_detail(response: httpx.Response) -> str:
    """Extract a concise error detail from an OpenAI error response."""
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            parts: List[str] = []
            if error.get("type"):
                parts.append(str(error["type"]))
            if error.get("message"):
                parts.append(str(error["message"]))
            if parts:
                return ": ".join(parts)
        elif error:
            return str(error)

    return f"HTTP {response.status_code}"
