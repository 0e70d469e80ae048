"""Application configuration."""
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )

    # App settings
    app_name: str = "PromptCut"
    debug: bool = True

    # Server settings
    host: str = "0.0.0.0"
    port: int = 5001

    # Data directories
    data_dir: Path = Path("./data")
    uploads_dir: Path = Path("./data/uploads/videos")  # Original uploads
    cuts_dir: Path = Path("./data/uploads/cuts")  # Produced artifacts
    audio_dir: Path = Path("./data/uploads/audio")  # Scratch audio for transcription
    subtitles_dir: Path = Path("./data/uploads/subtitles")  # Scratch subtitle tracks
    downloads_dir: Path = Path("./data/downloads")  # Extracted audio

    # Upload limits
    max_upload_mb: int = 500
    allowed_video_extensions: List[str] = [".mp4", ".mov", ".avi", ".mkv"]

    # FFmpeg settings
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    stage_timeout_seconds: float = 600.0  # Per backend invocation
    probe_timeout_seconds: float = 30.0

    # Export settings
    export_video_codec: str = "libx264"
    export_video_preset: str = "fast"
    export_video_crf: int = 23
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "192k"

    # Overlay settings
    overlay_bold_font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"

    # OpenAI (transcription + prompt classification)
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    transcription_model: str = "whisper-1"
    classifier_model: str = "gpt-4o"
    transcription_timeout_seconds: float = 300.0
    classifier_timeout_seconds: float = 60.0

    # Frontend
    frontend_url: str = "http://localhost:3000"


settings = Settings()

# Ensure directories exist
for _directory in (
    settings.uploads_dir,
    settings.cuts_dir,
    settings.audio_dir,
    settings.subtitles_dir,
    settings.downloads_dir,
):
    _directory.mkdir(parents=True, exist_ok=True)
