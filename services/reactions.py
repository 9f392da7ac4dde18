# services/reactions.py
import logging

from database.models import Reaction, ReactionStatus, SourceVideo
from services.errors import NotFoundOrDenied, MediaNotReady, InvalidRequest
from services.utils import sanitize_file_name, utcnow

logger = logging.getLogger("Reactions")


class ReactionService:

    def __init__(self, settings, store, blob_store):
        self.settings = settings
        self.store = store
        self.blob_store = blob_store

    def _owned(self, reaction_id: str, owner_id: str) -> Reaction:
        reaction = self.store.first(Reaction, {"id": reaction_id, "user_id": owner_id})
        if not reaction:
            raise NotFoundOrDenied("Reaction not found")
        return reaction

    def create_reaction(self, owner_id: str, title: str = None, source_video_id: str = None,
                        source_video_url: str = None, thumbnail_url: str = None) -> Reaction:
        if source_video_id:
            source = self.store.first(SourceVideo, {"id": source_video_id, "user_id": owner_id})
            if not source:
                raise NotFoundOrDenied("Source video not found")
            source_video_url = source_video_url or source.original_url
        reaction = self.store.insert(Reaction, {
            "user_id": owner_id,
            "title": title or "Untitled Reaction",
            "source_video_id": source_video_id,
            "source_video_url": source_video_url,
            "thumbnail_url": thumbnail_url,
            "status": ReactionStatus.PENDING_UPLOAD,
        })
        logger.info(f"[Reactions] Created reaction {reaction.id} for user {owner_id}")
        return reaction

    def list_reactions(self, owner_id: str):
        return self.store.select(Reaction, {"user_id": owner_id}, order_by="created_at", descending=True)

    def get_reaction(self, reaction_id: str, owner_id: str) -> Reaction:
        return self._owned(reaction_id, owner_id)

    def lookup_by_source_video(self, source_video_id: str, owner_id: str):
        """Reactions linked to a source video by id or by its original/public URL."""
        source = self.store.first(SourceVideo, {"id": source_video_id, "user_id": owner_id})
        if not source:
            raise NotFoundOrDenied("Source video not found")

        found = {r.id: r for r in self.store.select(
            Reaction, {"user_id": owner_id, "source_video_id": source_video_id})}
        urls = [u for u in (source.original_url, source.public_url) if u]
        if urls:
            for r in self.store.select(Reaction, {"user_id": owner_id, "source_video_url": urls}):
                found.setdefault(r.id, r)
        return sorted(found.values(), key=lambda r: r.created_at, reverse=True)

    # --- Upload & completion ---

    def request_upload_target(self, reaction_id: str, owner_id: str, file_name: str) -> str:
        """
        Ownership is checked before the client is handed a writable path.
        Same (owner, reaction, file name) always gives the same path.
        """
        self._owned(reaction_id, owner_id)
        safe_name = sanitize_file_name(file_name)
        if not safe_name.strip("._"):
            raise InvalidRequest("A file name is required")
        return f"{owner_id}/{reaction_id}/{safe_name}"

    def complete_upload(self, reaction_id: str, owner_id: str, storage_path: str) -> Reaction:
        """Idempotent; the last reported path wins."""
        if not storage_path:
            raise InvalidRequest("storage_path is required")
        updated = self.store.update(
            Reaction,
            {"id": reaction_id, "user_id": owner_id},
            {"reaction_video_storage_path": storage_path, "status": ReactionStatus.UPLOADED, "updated_at": utcnow()},
        )
        if not updated:
            raise NotFoundOrDenied("Reaction not found")
        logger.info(f"[Reactions] Upload completed for reaction {reaction_id}: {storage_path}")
        return updated[0]

    def get_download_url(self, reaction_id: str, owner_id: str) -> str:
        reaction = self._owned(reaction_id, owner_id)
        if not reaction.reaction_video_storage_path:
            raise MediaNotReady()
        return self.blob_store.get_signed_url(
            self.settings.reaction_video_bucket,
            reaction.reaction_video_storage_path,
            self.settings.signed_url_ttl_seconds,
        )
