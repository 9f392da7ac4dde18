# publishers/base.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from services.errors import CapabilityNotSupported, UpstreamProviderError


@dataclass
class PublishRequest:
    title: str
    description: str = ""
    privacy: str = "private"
    tags: List[str] = field(default_factory=list)
    playlist_id: Optional[str] = None
    # Push uploads read a local scratch file, pull uploads hand the provider a signed URL
    video_path: Optional[str] = None
    video_url: Optional[str] = None


@dataclass
class PublishResult:
    post_id: str
    post_url: Optional[str] = None
    extra: Dict = field(default_factory=dict)


class BasePublisher:
    """
    Provider client used by the orchestrator and the analytics fetcher.
    Subclasses override what their platform supports.
    """
    pulls_from_url = False

    def __init__(self, provider, timeout: int = 60):
        self.provider = provider
        self.timeout = timeout

    def publish(self, account, access_token: str, request: PublishRequest) -> PublishResult:
        raise CapabilityNotSupported(f"Publishing to {self.provider.name} is not supported")

    def fetch_statistics(self, account, access_token: str, post_id: str) -> Dict:
        raise CapabilityNotSupported(f"{self.provider.name} statistics are not supported")

    def fetch_rich_analytics(self, account, access_token: str, post_id: str, since=None) -> Dict:
        raise CapabilityNotSupported(f"{self.provider.name} has no detailed analytics")

    def fetch_account_analytics(self, account, access_token: str, since=None) -> Dict:
        raise CapabilityNotSupported(f"{self.provider.name} account analytics are not supported")

    # --- Playlists ---

    def _no_playlists(self):
        return CapabilityNotSupported(f"{self.provider.name} playlists are not supported")

    def list_playlists(self, account, access_token: str) -> List[Dict]:
        raise self._no_playlists()

    def get_playlist(self, account, access_token: str, playlist_id: str) -> Dict:
        raise self._no_playlists()

    def create_playlist(self, account, access_token: str, title: str, description: str = "",
                        privacy: str = "private") -> Dict:
        raise self._no_playlists()

    def update_playlist(self, account, access_token: str, playlist_id: str, title: str = None,
                        description: str = None, privacy: str = None) -> Dict:
        raise self._no_playlists()

    def delete_playlist(self, account, access_token: str, playlist_id: str):
        raise self._no_playlists()

    def list_playlist_items(self, account, access_token: str, playlist_id: str) -> List[Dict]:
        raise self._no_playlists()

    def add_playlist_item(self, account, access_token: str, playlist_id: str, video_id: str) -> Dict:
        raise self._no_playlists()

    def remove_playlist_item(self, account, access_token: str, item_id: str):
        raise self._no_playlists()

    def _json(self, response, what: str):
        """Parses a provider response body, raising UpstreamProviderError on garbage or HTTP errors."""
        try:
            data = response.json()
        except ValueError:
            raise UpstreamProviderError(f"{self.provider.name} returned an unreadable {what} response",
                                        raw_body=response.text[:2000], provider=self.provider.id.value)
        if not response.ok:
            raise UpstreamProviderError(f"{self.provider.name} {what} request failed",
                                        raw_body=data, provider=self.provider.id.value)
        return data
