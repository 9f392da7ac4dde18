# services/downloader.py
import os
import glob
import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from services.errors import DownloadError, InvalidRequest

logger = logging.getLogger("Downloader")

# Prefer <=1080p mp4 video + m4a audio, merged to mp4
PREFERRED_FORMAT = "bestvideo[height<=1080][ext=mp4]+bestaudio[ext=m4a]/best[height<=1080][ext=mp4]/best[ext=mp4]"
FALLBACK_FORMAT = "best"

SUPPORTED_DOMAINS = (
    "youtube.com", "youtu.be", "vimeo.com", "tiktok.com", "instagram.com",
    "twitter.com", "x.com", "facebook.com", "fb.watch", "twitch.tv",
    "dailymotion.com", "reddit.com", "linkedin.com", "tumblr.com", "soundcloud.com",
    "imgur.com", "streamable.com", "bitchute.com", "odysee.com", "rutube.ru",
    "vk.com", "bilibili.com",
)

_PLATFORM_NAMES = {
    "youtu.be": "youtube", "x.com": "twitter", "fb.watch": "facebook",
}


def validate_source_url(url: str) -> str:
    """Accepts only http(s) URLs on a supported video platform."""
    parsed = urlparse((url or "").strip())
    host = (parsed.hostname or "").lower()
    if parsed.scheme not in ("http", "https") or not host:
        raise InvalidRequest("A valid http(s) video URL is required")
    if not any(host == d or host.endswith("." + d) for d in SUPPORTED_DOMAINS):
        raise InvalidRequest("This video platform is not supported")
    return url.strip()


def platform_from_url(url: str) -> Optional[str]:
    host = (urlparse(url).hostname or "").lower()
    for domain in SUPPORTED_DOMAINS:
        if host == domain or host.endswith("." + domain):
            return _PLATFORM_NAMES.get(domain, domain.split(".")[0])
    return None


def classify_download_error(stderr: str) -> str:
    """Turns yt-dlp's stderr into a short message that is safe to show a user."""
    text = (stderr or "").lower()
    if "private video" in text or "video unavailable" in text or "has been removed" in text:
        return "This video is unavailable or private"
    if "copyright" in text:
        return "This video is blocked for copyright reasons"
    if "not available in your country" in text or ("geo" in text and "restrict" in text):
        return "This video is geo-restricted"
    if "requested format is not available" in text or "no video formats" in text:
        return "No downloadable format is available for this video"
    if "max-filesize" in text or "larger than max-filesize" in text:
        return "This video exceeds the maximum allowed size"
    return "Failed to download video"


@dataclass
class VideoInfo:
    title: Optional[str] = None
    duration: Optional[float] = None
    thumbnail_url: Optional[str] = None
    platform: Optional[str] = None


class YtDlpDownloader:
    """Runs the yt-dlp command line tool. Input is a URL, output is a local file path."""

    def __init__(self, binary: str = "yt-dlp", max_filesize: str = "50m", timeout: int = 900):
        self.binary = binary
        self.max_filesize = max_filesize
        self.timeout = timeout

    def _run(self, cmd):
        logger.info(f"[yt-dlp] Running: {' '.join(cmd[:6])}...")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            logger.error(f"[yt-dlp] Binary not found: {self.binary}")
            raise DownloadError("Downloader is not installed")
        except subprocess.TimeoutExpired:
            logger.error(f"[yt-dlp] Timed out after {self.timeout}s")
            raise DownloadError("Download timed out")
        if proc.returncode != 0:
            logger.error(f"[yt-dlp] Exit code {proc.returncode}. stderr: {proc.stderr[-400:]}")
            raise DownloadError(classify_download_error(proc.stderr))
        return proc.stdout

    def probe(self, url: str) -> VideoInfo:
        stdout = self._run([self.binary, "--dump-single-json", "--no-playlist", "--no-warnings", url])
        try:
            info = json.loads(stdout)
        except ValueError:
            raise DownloadError("Downloader returned unreadable metadata")
        return VideoInfo(
            title=info.get("title"),
            duration=info.get("duration"),
            thumbnail_url=info.get("thumbnail"),
            platform=info.get("extractor_key") or info.get("extractor"),
        )

    def download(self, url: str, output_dir: str, stem: str) -> str:
        """
        Downloads with the preferred format policy and retries once with plain 'best'.
        Returns the path of the produced file.
        """
        os.makedirs(output_dir, exist_ok=True)
        template = os.path.join(output_dir, f"{stem}.%(ext)s")
        try:
            self._download(url, template, PREFERRED_FORMAT)
        except DownloadError as e:
            logger.warning(f"[yt-dlp] Preferred format failed ({e.message}), retrying with '{FALLBACK_FORMAT}'")
            self._discard_partials(output_dir, stem)
            self._download(url, template, FALLBACK_FORMAT)

        produced = [p for p in glob.glob(os.path.join(output_dir, f"{stem}.*")) if not p.endswith(".part")]
        if not produced:
            raise DownloadError("Downloader did not create an output file")
        return produced[0]

    def _download(self, url: str, template: str, fmt: str):
        self._run([
            self.binary,
            "--no-playlist",
            "--no-warnings",
            "--format", fmt,
            "--merge-output-format", "mp4",
            "--max-filesize", self.max_filesize,
            "--output", template,
            url,
        ])

    @staticmethod
    def _discard_partials(output_dir: str, stem: str):
        for path in glob.glob(os.path.join(output_dir, f"{stem}.*")):
            os.remove(path)
