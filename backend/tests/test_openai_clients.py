"""Tests for the OpenAI-backed classifier and transcriber."""
import httpx
import pytest

from promptcut.errors import ClassificationError, TranscriptionError, UnsupportedActionError
from promptcut.models import RemoveSegmentAction, SlowMotionAction
from promptcut.services import classifier, transcription
from promptcut.services.classifier import OpenAIActionClassifier, parse_classifier_output
from promptcut.services.transcription import WhisperTranscriber


class _FakeResponse:
    def __init__(self, status_code: int, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON payload")
        return self._payload


class _FakeClient:
    def __init__(self, post_response=None, error=None, **kwargs):
        self._post_response = post_response
        self._error = error
        self.requests = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, *args, **kwargs):
        self.requests.append((args, kwargs))
        if self._error:
            raise self._error
        return self._post_response


def _chat_response(content: str) -> _FakeResponse:
    return _FakeResponse(200, payload={"choices": [{"message": {"content": content}}]})


def _patch_client(monkeypatch, module, client):
    monkeypatch.setattr(module.httpx, "AsyncClient", lambda **kwargs: client)


def test_parse_classifier_output_strips_fences():
    content = '```json\n{"actions": [{"action": "undo"}]}\n```'
    assert parse_classifier_output(content) == {"actions": [{"action": "undo"}]}


def test_parse_classifier_output_rejects_prose():
    with pytest.raises(ClassificationError):
        parse_classifier_output("Sure! Here you go.")


@pytest.mark.asyncio
async def test_classify_slow_motion(monkeypatch):
    client = _FakeClient(post_response=_chat_response(
        '{"actions": [{"action": "slow_motion", "start": "00:02:00", "end": "00:02:30", "speed": 0.25}]}'
    ))
    _patch_client(monkeypatch, classifier, client)

    actions = await OpenAIActionClassifier(api_key="sk-test").classify(
        "Slow down clip from 2:00 to 2:30 to 25% speed"
    )

    assert len(actions) == 1
    assert isinstance(actions[0], SlowMotionAction)
    assert actions[0].speed == 0.25
    _, kwargs = client.requests[0]
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["messages"][1]["content"] == "Slow down clip from 2:00 to 2:30 to 25% speed"


@pytest.mark.asyncio
async def test_classify_fenced_remove(monkeypatch):
    _patch_client(monkeypatch, classifier, _FakeClient(post_response=_chat_response(
        '```json\n{"actions": [{"action": "remove_segment", "start": "end-00:00:05", "end": "end"}]}\n```'
    )))

    [action] = await OpenAIActionClassifier(api_key="sk-test").classify("Remove the last 5 seconds")

    assert isinstance(action, RemoveSegmentAction)
    assert action.start == "end-00:00:05"


@pytest.mark.asyncio
async def test_classify_unsupported_action(monkeypatch):
    _patch_client(monkeypatch, classifier, _FakeClient(post_response=_chat_response(
        '{"actions": [{"action": "colorize"}]}'
    )))

    with pytest.raises(UnsupportedActionError):
        await OpenAIActionClassifier(api_key="sk-test").classify("Make it sepia")


@pytest.mark.asyncio
async def test_classify_provider_rejection(monkeypatch):
    _patch_client(monkeypatch, classifier, _FakeClient(post_response=_FakeResponse(
        401, payload={"error": {"type": "invalid_request_error", "message": "Incorrect API key"}}
    )))

    with pytest.raises(ClassificationError, match="invalid_request_error: Incorrect API key"):
        await OpenAIActionClassifier(api_key="sk-bad").classify("Cut the first 10 seconds")


@pytest.mark.asyncio
async def test_classify_timeout(monkeypatch):
    _patch_client(monkeypatch, classifier, _FakeClient(error=httpx.ReadTimeout("timed out")))

    with pytest.raises(ClassificationError, match="timed out"):
        await OpenAIActionClassifier(api_key="sk-test").classify("Cut the first 10 seconds")


@pytest.mark.asyncio
async def test_classify_without_key(monkeypatch):
    monkeypatch.setattr(classifier.settings, "openai_api_key", None)

    with pytest.raises(ClassificationError, match="not configured"):
        await OpenAIActionClassifier().classify("Cut the first 10 seconds")


@pytest.mark.asyncio
async def test_transcribe_returns_srt(monkeypatch, tmp_path):
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"audio")
    srt = "1\n00:00:00,000 --> 00:00:01,000\nHi\n"
    client = _FakeClient(post_response=_FakeResponse(200, text=srt))
    _patch_client(monkeypatch, transcription, client)

    result = await WhisperTranscriber(api_key="sk-test").transcribe(audio)

    assert result == srt
    args, kwargs = client.requests[0]
    assert args[0].endswith("/audio/transcriptions")
    assert kwargs["data"]["response_format"] == "srt"


@pytest.mark.asyncio
async def test_transcribe_provider_rejection(monkeypatch, tmp_path):
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"audio")
    _patch_client(monkeypatch, transcription, _FakeClient(post_response=_FakeResponse(
        400, payload={"error": {"message": "Audio file is too short"}}
    )))

    with pytest.raises(TranscriptionError, match="too short"):
        await WhisperTranscriber(api_key="sk-test").transcribe(audio)


@pytest.mark.asyncio
async def test_transcribe_network_error(monkeypatch, tmp_path):
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"audio")
    _patch_client(monkeypatch, transcription, _FakeClient(error=httpx.ConnectError("refused")))

    with pytest.raises(TranscriptionError, match="refused"):
        await WhisperTranscriber(api_key="sk-test").transcribe(audio)


@pytest.mark.asyncio
async def test_transcribe_missing_audio(monkeypatch, tmp_path):
    _patch_client(monkeypatch, transcription, _FakeClient(post_response=_FakeResponse(200, text="x")))

    with pytest.raises(TranscriptionError):
        await WhisperTranscriber(api_key="sk-test").transcribe(tmp_path / "missing.mp3")
