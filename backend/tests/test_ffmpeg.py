"""Tests for ffmpeg/ffprobe process helpers."""
import sys
import time

import pytest

from ffmpeg_syntax import get_token

from promptcut.config import settings
from promptcut.errors import ProbeError, TranscodeError, TranscodeTimeoutError
from promptcut.utils import ffmpeg
from promptcut.utils.ffmpeg import (
    escape_filter_value,
    has_audio_stream,
    probe_duration,
    run_ffmpeg,
    run_process,
)


class TestRunProcess:
    """Tests for run_process using the current interpreter as a stand-in binary."""

    @pytest.mark.asyncio
    async def test_returns_output(self):
        stdout, _ = await run_process([sys.executable, "-c", "print('ok')"], timeout=10)
        assert stdout.strip() == b"ok"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        started = time.monotonic()
        with pytest.raises(TranscodeTimeoutError) as exc_info:
            await run_process([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.5)

        assert time.monotonic() - started < 4
        assert exc_info.value.kind == "timeout"
        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_non_zero_exit_includes_stderr(self):
        cmd = [sys.executable, "-c", "import sys; sys.stderr.write('broken input'); sys.exit(3)"]
        with pytest.raises(TranscodeError, match="broken input"):
            await run_process(cmd, timeout=10)

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        with pytest.raises(TranscodeError, match="Failed to start"):
            await run_process(["/nonexistent/ffmpeg-binary"], timeout=5)


class TestRunFFmpeg:
    @pytest.mark.asyncio
    async def test_prefixes_binary_and_overwrite(self, monkeypatch):
        captured = {}

        async def fake_run_process(cmd, timeout):
            captured["cmd"] = cmd
            captured["timeout"] = timeout
            return b"", b""

        monkeypatch.setattr(ffmpeg, "run_process", fake_run_process)
        await run_ffmpeg(["-i", "in.mp4", "out.mp4"])

        assert captured["cmd"] == [settings.ffmpeg_path, "-hide_banner", "-y", "-i", "in.mp4", "out.mp4"]
        assert captured["timeout"] == settings.stage_timeout_seconds


class TestProbeDuration:
    """Tests for probe_duration parsing."""

    @staticmethod
    def _patch(monkeypatch, stdout=b"", error=None):
        async def fake_run_process(cmd, timeout):
            if error:
                raise error
            return stdout, b""

        monkeypatch.setattr(ffmpeg, "run_process", fake_run_process)

    @pytest.mark.asyncio
    async def test_parses_float(self, monkeypatch):
        self._patch(monkeypatch, stdout=b"12.500000\n")
        assert await probe_duration("video.mp4") == 12.5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stdout", [b"N/A\n", b"", b"0.0", b"-4", b"inf"])
    async def test_rejects_bad_output(self, monkeypatch, stdout):
        self._patch(monkeypatch, stdout=stdout)
        with pytest.raises(ProbeError):
            await probe_duration("video.mp4")

    @pytest.mark.asyncio
    async def test_process_failure(self, monkeypatch):
        self._patch(monkeypatch, error=TranscodeError("ffprobe exited with code 1"))
        with pytest.raises(ProbeError):
            await probe_duration("video.mp4")


class TestHasAudioStream:
    @staticmethod
    def _patch(monkeypatch, stdout=b"", error=None):
        captured = {}

        async def fake_run_process(cmd, timeout):
            captured["cmd"] = cmd
            if error:
                raise error
            return stdout, b""

        monkeypatch.setattr(ffmpeg, "run_process", fake_run_process)
        return captured

    @pytest.mark.asyncio
    async def test_audio_stream_present(self, monkeypatch):
        captured = self._patch(monkeypatch, stdout=b"1\n")

        assert await has_audio_stream("video.mp4") is True
        assert captured["cmd"][captured["cmd"].index("-select_streams") + 1] == "a"

    @pytest.mark.asyncio
    async def test_video_only(self, monkeypatch):
        self._patch(monkeypatch, stdout=b"\n")
        assert await has_audio_stream("video.mp4") is False

    @pytest.mark.asyncio
    async def test_process_failure(self, monkeypatch):
        self._patch(monkeypatch, error=TranscodeError("ffprobe exited with code 1"))
        with pytest.raises(ProbeError):
            await has_audio_stream("video.mp4")


class TestEscapeFilterValue:
    """Values must come back intact after ffmpeg's graph and option splitting."""

    @pytest.mark.parametrize("value", [
        "plain text",
        "It's",
        "12:30",
        "a,b;c",
        "[0:v]",
        "C:\\fonts\\bold.ttf",
        "''",
    ])
    def test_survives_both_levels(self, value):
        escaped = escape_filter_value(value)

        graph_token, graph_rest = get_token(escaped, "[],;")
        option_token, option_rest = get_token(graph_token, ":")

        assert graph_rest == ""
        assert option_rest == ""
        assert option_token == value

    def test_is_never_quoted(self):
        assert not escape_filter_value("It's").startswith("'")
