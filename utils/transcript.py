import logging
from typing import Optional
from urllib.parse import urlparse, parse_qs

from youtube_transcript_api import YouTubeTranscriptApi, NoTranscriptFound

from models.models import Training

# Configure logging
logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = ("youtube.com", "youtu.be")


class TranscriptError(Exception):
    pass


def is_youtube_url(url: Optional[str]) -> bool:
    return bool(url) and any(host in url for host in YOUTUBE_HOSTS)


def find_youtube_url(training: Training) -> Optional[str]:
    """The legacy media URL, else the first YouTube entry among the media files."""
    if is_youtube_url(training.media_url):
        return training.media_url

    for media in training.media_files or []:
        url = media.get("url") or ""
        if media.get("type") == "youtube" or is_youtube_url(url):
            return url
    return None


def extract_video_id(url: str) -> str:
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    path_parts = [part for part in parsed.path.split("/") if part]

    if host.endswith("youtu.be") and path_parts:
        return path_parts[0]
    if "youtube.com" in host:
        video_ids = parse_qs(parsed.query).get("v")
        if video_ids:
            return video_ids[0]
        if len(path_parts) >= 2 and path_parts[0] in ("embed", "shorts", "live", "v"):
            return path_parts[1]
    raise TranscriptError(f"Could not find a video id in {url}")


class TranscriptFetcher:
    """Fetches YouTube captions as plain text."""

    def __init__(self, preferred_language: str = "pt"):
        self.preferred_language = preferred_language
        self.client = YouTubeTranscriptApi()

    def fetch_text(self, url: str) -> str:
        """
        Caption text for a video, preferring the configured language.

        Raises:
            TranscriptError: If the video has no usable captions
        """
        video_id = extract_video_id(url)
        try:
            try:
                fetched = self.client.fetch(video_id, languages=[self.preferred_language])
            except NoTranscriptFound:
                logger.warning(f"No '{self.preferred_language}' transcript for {video_id}, trying any available track")
                transcript = next(iter(self.client.list(video_id)), None)
                if transcript is None:
                    raise TranscriptError("No captions found")
                fetched = transcript.fetch()
        except TranscriptError:
            raise
        except Exception as e:
            raise TranscriptError(str(e) or "No captions found") from e

        return " ".join(snippet.text for snippet in fetched).strip()
