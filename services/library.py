# services/library.py
import logging

from database.models import SourceVideo, VideoStatus, Folder
from services.errors import NotFoundOrDenied, InvalidRequest, RelationMissingError, BlobStoreError

logger = logging.getLogger("Library")

UNFILED = "null"


class LibraryService:
    """The user's downloaded source videos and the folders they are grouped in."""

    def __init__(self, settings, store, blob_store):
        self.settings = settings
        self.store = store
        self.blob_store = blob_store

    # --- Videos ---

    def list_library(self, owner_id: str, folder_id: str = None):
        filters = {"user_id": owner_id, "status": VideoStatus.COMPLETED}
        if folder_id == UNFILED:
            filters["folder_id"] = None
        elif folder_id:
            filters["folder_id"] = folder_id
        videos = self.store.select(SourceVideo, filters, order_by="created_at", descending=True)
        return {"videos": videos, "folders": self.list_folders(owner_id)}

    def get_video(self, video_id: str, owner_id: str) -> SourceVideo:
        video = self.store.first(SourceVideo, {"id": video_id, "user_id": owner_id})
        if not video:
            raise NotFoundOrDenied("Video not found")
        return video

    def _owned_videos(self, owner_id: str, video_ids):
        ids = list(dict.fromkeys(video_ids or []))
        if not ids:
            raise InvalidRequest("video_ids must not be empty")
        videos = self.store.select(SourceVideo, {"id": ids, "user_id": owner_id})
        if len(videos) != len(ids):
            # Some ids are missing or belong to someone else: touch nothing
            raise NotFoundOrDenied("One or more videos not found")
        return videos

    def delete_videos(self, owner_id: str, video_ids) -> int:
        videos = self._owned_videos(owner_id, video_ids)
        deleted = self.store.delete(SourceVideo, {"id": [v.id for v in videos], "user_id": owner_id})
        for video in videos:
            if not video.storage_path:
                continue
            try:
                self.blob_store.delete(self.settings.source_video_bucket, video.storage_path)
            except BlobStoreError as e:
                logger.warning(f"[Library] Blob for video {video.id} not removed: {e.message}")
        logger.info(f"[Library] Deleted {deleted} videos for user {owner_id}")
        return deleted

    def move_videos(self, owner_id: str, video_ids, folder_id: str = None) -> int:
        videos = self._owned_videos(owner_id, video_ids)
        if folder_id:
            self.get_folder(folder_id, owner_id)
        moved = self.store.update(
            SourceVideo, {"id": [v.id for v in videos], "user_id": owner_id}, {"folder_id": folder_id or None})
        return len(moved)

    # --- Folders ---

    def list_folders(self, owner_id: str):
        try:
            return self.store.select(Folder, {"user_id": owner_id}, order_by="name")
        except RelationMissingError:
            logger.warning("[Library] Folders table missing, returning no folders")
            return []

    def get_folder(self, folder_id: str, owner_id: str) -> Folder:
        folder = self.store.first(Folder, {"id": folder_id, "user_id": owner_id})
        if not folder:
            raise NotFoundOrDenied("Folder not found")
        return folder

    def create_folder(self, owner_id: str, name: str, description: str = None) -> Folder:
        if not name or not name.strip():
            raise InvalidRequest("Folder name is required")
        return self.store.insert(Folder, {"user_id": owner_id, "name": name.strip(), "description": description})

    def update_folder(self, folder_id: str, owner_id: str, name: str = None, description: str = None) -> Folder:
        patch = {}
        if name is not None:
            if not name.strip():
                raise InvalidRequest("Folder name is required")
            patch["name"] = name.strip()
        if description is not None:
            patch["description"] = description
        if not patch:
            return self.get_folder(folder_id, owner_id)
        updated = self.store.update(Folder, {"id": folder_id, "user_id": owner_id}, patch)
        if not updated:
            raise NotFoundOrDenied("Folder not found")
        return updated[0]

    def delete_folder(self, folder_id: str, owner_id: str):
        """Videos stay; they just lose their folder reference."""
        self.get_folder(folder_id, owner_id)
        self.store.update(SourceVideo, {"folder_id": folder_id, "user_id": owner_id}, {"folder_id": None})
        self.store.delete(Folder, {"id": folder_id, "user_id": owner_id})
        logger.info(f"[Library] Folder {folder_id} deleted, its videos are now unfiled")
