"""Filesystem layout for uploads, produced artifacts and scratch files."""
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from promptcut.config import settings
from promptcut.errors import InvalidFilenameError, NotFoundError

logger = logging.getLogger(__name__)

FORBIDDEN_FILENAME_PARTS = ("..", "/", "\\", "\x00")


def validate_filename(filename: Optional[str]) -> str:
    """
    Check a client-supplied asset identifier.

    Raises:
        InvalidFilenameError: If empty or containing traversal/separator characters
    """
    if not filename or not isinstance(filename, str) or not filename.strip():
        raise InvalidFilenameError("Missing filename.")
    if any(part in filename for part in FORBIDDEN_FILENAME_PARTS):
        raise InvalidFilenameError("Invalid filename.")
    return filename


def unique_token() -> str:
    """Millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}"


@dataclass
class MediaStore:
    """Paths into the directories the edit pipelines read and write."""
    uploads_dir: Path
    cuts_dir: Path
    audio_dir: Path
    subtitles_dir: Path
    downloads_dir: Path

    @classmethod
    def from_settings(cls) -> "MediaStore":
        return cls(
            uploads_dir=settings.uploads_dir,
            cuts_dir=settings.cuts_dir,
            audio_dir=settings.audio_dir,
            subtitles_dir=settings.subtitles_dir,
            downloads_dir=settings.downloads_dir,
        )

    def ensure_dirs(self) -> None:
        for directory in (
            self.uploads_dir, self.cuts_dir, self.audio_dir,
            self.subtitles_dir, self.downloads_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def resolve(self, filename: str) -> Path:
        """
        Find an asset among original uploads, then produced artifacts.

        Raises:
            InvalidFilenameError: If the identifier is unsafe
            NotFoundError: If no search directory holds the file
        """
        validate_filename(filename)
        for directory in (self.uploads_dir, self.cuts_dir):
            candidate = directory / filename
            if candidate.is_file():
                return candidate
        logger.warning(f"File not found: {filename}")
        raise NotFoundError("Video file not found.")

    def artifact_path(self, prefix: str, ext: str, token: Optional[str] = None) -> Path:
        """New path in the produced-artifacts area."""
        return self.cuts_dir / f"{prefix}-{token or unique_token()}{ext}"

    def download_path(self, prefix: str, ext: str, token: Optional[str] = None) -> Path:
        return self.downloads_dir / f"{prefix}-{token or unique_token()}{ext}"

    def upload_path(self, ext: str) -> Path:
        return self.uploads_dir / f"video-{unique_token()}{ext}"

    def scratch_audio_path(self, token: str) -> Path:
        return self.audio_dir / f"{token}.mp3"

    def scratch_subtitle_path(self, token: str) -> Path:
        return self.subtitles_dir / f"subtitles-{token}.srt"

    def url_for(self, path: Path) -> str:
        """Public URL of a file in one of the served directories."""
        if path.parent == self.cuts_dir:
            return f"/uploads/cuts/{path.name}"
        if path.parent == self.downloads_dir:
            return f"/downloads/{path.name}"
        if path.parent == self.uploads_dir:
            return f"/uploads/videos/{path.name}"
        raise ValueError(f"{path} is not in a served directory")
