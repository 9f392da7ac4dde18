# services/playlists.py
import logging

from database.models import SocialAccount, AccountStatus
from publishers.registry import Capability
from services import capabilities
from services.errors import AccountNotFound, CapabilityNotSupported, InvalidRequest

logger = logging.getLogger("Playlists")


class PlaylistService:
    """
    Playlist management on the provider side. Playlists are not mirrored locally:
    every call goes to the provider with the most recently used active account.
    """

    def __init__(self, store, token_manager, publishers):
        self.store = store
        self.token_manager = token_manager
        self.publishers = publishers

    def _session(self, owner_id: str, provider_id: str):
        provider = capabilities.require_capability(provider_id, Capability.PLAYLISTS)
        publisher = self.publishers.get(provider.id)
        if publisher is None:
            raise CapabilityNotSupported(f"{provider.name} playlists are not supported yet")
        account = self.store.first(
            SocialAccount,
            {"user_id": owner_id, "provider": provider.id.value, "status": AccountStatus.ACTIVE},
            order_by="updated_at", descending=True,
        )
        if account is None:
            raise AccountNotFound()
        account = self.token_manager.ensure_fresh(account)
        return publisher, account

    def list_playlists(self, owner_id: str, provider_id: str = "youtube"):
        publisher, account = self._session(owner_id, provider_id)
        return publisher.list_playlists(account, account.access_token)

    def get_playlist(self, owner_id: str, playlist_id: str, provider_id: str = "youtube"):
        publisher, account = self._session(owner_id, provider_id)
        return publisher.get_playlist(account, account.access_token, playlist_id)

    def create_playlist(self, owner_id: str, title: str, description: str = "", privacy: str = "private",
                        provider_id: str = "youtube"):
        if not title or not title.strip():
            raise InvalidRequest("Missing required fields (title)")
        publisher, account = self._session(owner_id, provider_id)
        return publisher.create_playlist(account, account.access_token, title.strip(), description or "",
                                         privacy or "private")

    def update_playlist(self, owner_id: str, playlist_id: str, title: str = None, description: str = None,
                        privacy: str = None, provider_id: str = "youtube"):
        if title is not None and not title.strip():
            raise InvalidRequest("Playlist title cannot be empty")
        publisher, account = self._session(owner_id, provider_id)
        return publisher.update_playlist(account, account.access_token, playlist_id,
                                         title.strip() if title else None, description, privacy)

    def delete_playlist(self, owner_id: str, playlist_id: str, provider_id: str = "youtube"):
        publisher, account = self._session(owner_id, provider_id)
        publisher.delete_playlist(account, account.access_token, playlist_id)

    def list_videos(self, owner_id: str, playlist_id: str, provider_id: str = "youtube"):
        publisher, account = self._session(owner_id, provider_id)
        return publisher.list_playlist_items(account, account.access_token, playlist_id)

    def add_video(self, owner_id: str, playlist_id: str, video_id: str, provider_id: str = "youtube"):
        if not video_id:
            raise InvalidRequest("Missing required field: video_id")
        publisher, account = self._session(owner_id, provider_id)
        item = publisher.add_playlist_item(account, account.access_token, playlist_id, video_id)
        logger.info(f"[Playlists] Added {video_id} to playlist {playlist_id} for user {owner_id}")
        return item

    def remove_video(self, owner_id: str, playlist_id: str, item_id: str, provider_id: str = "youtube"):
        """item_id is the playlist item id, not the video id."""
        if not item_id:
            raise InvalidRequest("Missing required parameter: item_id")
        publisher, account = self._session(owner_id, provider_id)
        publisher.remove_playlist_item(account, account.access_token, item_id)
        logger.info(f"[Playlists] Removed item {item_id} from playlist {playlist_id} for user {owner_id}")
