"""Unit tests for URL validation, error classification and the yt-dlp wrapper."""

import os
import subprocess
from unittest.mock import patch

import pytest

from services.downloader import (
    YtDlpDownloader, validate_source_url, platform_from_url, classify_download_error,
    PREFERRED_FORMAT, FALLBACK_FORMAT,
)
from services.errors import DownloadError, InvalidRequest


class TestValidateSourceUrl:

    def test_supported_platforms(self):
        assert validate_source_url(" https://youtu.be/abc ") == "https://youtu.be/abc"
        assert validate_source_url("https://m.youtube.com/watch?v=1")
        assert validate_source_url("https://vm.tiktok.com/xyz")

    @pytest.mark.parametrize("url", [
        "", "not a url", "ftp://youtube.com/v", "https://example.com/video.mp4", "https://notyoutube.com/x",
    ])
    def test_rejected_urls(self, url):
        with pytest.raises(InvalidRequest):
            validate_source_url(url)

    def test_platform_names(self):
        assert platform_from_url("https://youtu.be/abc") == "youtube"
        assert platform_from_url("https://x.com/u/status/1") == "twitter"
        assert platform_from_url("https://www.vimeo.com/1") == "vimeo"


class TestClassifyDownloadError:

    @pytest.mark.parametrize("stderr,expected", [
        ("ERROR: Private video. Sign in", "This video is unavailable or private"),
        ("ERROR: This video is not available in your country", "This video is geo-restricted"),
        ("ERROR: geo restriction applies", "This video is geo-restricted"),
        ("ERROR: Requested format is not available", "No downloadable format is available for this video"),
        ("File is larger than max-filesize", "This video exceeds the maximum allowed size"),
        ("something odd", "Failed to download video"),
    ])
    def test_messages(self, stderr, expected):
        assert classify_download_error(stderr) == expected


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestYtDlpDownloader:

    def test_falls_back_to_best_format(self, tmp_path):
        calls = []

        def fake_run(cmd, **kwargs):
            fmt = cmd[cmd.index("--format") + 1]
            calls.append(fmt)
            if fmt == PREFERRED_FORMAT:
                (tmp_path / "clip.mp4.part").write_bytes(b"partial")
                return completed(1, stderr="ERROR: Requested format is not available")
            (tmp_path / "clip.mp4").write_bytes(b"video")
            return completed(0)

        with patch("services.downloader.subprocess.run", side_effect=fake_run):
            path = YtDlpDownloader().download("https://youtu.be/abc", str(tmp_path), "clip")

        assert calls == [PREFERRED_FORMAT, FALLBACK_FORMAT]
        assert path == os.path.join(str(tmp_path), "clip.mp4")
        assert not (tmp_path / "clip.mp4.part").exists()

    def test_both_attempts_failing_raises_classified_error(self, tmp_path):
        with patch("services.downloader.subprocess.run",
                   return_value=completed(1, stderr="ERROR: Video unavailable")):
            with pytest.raises(DownloadError) as exc:
                YtDlpDownloader().download("https://youtu.be/abc", str(tmp_path), "clip")

        assert exc.value.message == "This video is unavailable or private"

    def test_missing_binary(self, tmp_path):
        with patch("services.downloader.subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(DownloadError):
                YtDlpDownloader(binary="nope").probe("https://youtu.be/abc")

    def test_probe_reads_metadata(self):
        stdout = '{"title": "Clip", "duration": 42, "thumbnail": "https://i/t.jpg", "extractor_key": "Youtube"}'
        with patch("services.downloader.subprocess.run", return_value=completed(0, stdout=stdout)) as run:
            info = YtDlpDownloader().probe("https://youtu.be/abc")

        assert info.title == "Clip"
        assert info.duration == 42
        assert info.platform == "Youtube"
        assert "--dump-single-json" in run.call_args.args[0]
