# services/acquisition.py
import os
import logging

from database.models import Folder, SourceVideo, VideoStatus, Reaction, ReactionStatus
from services.downloader import validate_source_url, platform_from_url
from services.errors import ReactShareError, DownloadError, NotFoundOrDenied, RecordStoreError
from services.utils import new_id, sanitize_file_name
from storage.local_temp import cleanup_temp_file

logger = logging.getLogger("Acquisition")


class AcquisitionService:
    """
    Downloads external videos into the blob store as background jobs.

    A record only reaches its success status together with a storage path whose
    blob has been written; every failure lands on the error status instead.
    """

    def __init__(self, settings, store, blob_store, downloader, scratch, tasks):
        self.settings = settings
        self.store = store
        self.blob_store = blob_store
        self.downloader = downloader
        self.scratch = scratch
        self.tasks = tasks

    # --- Source videos ---

    def acquire(self, url: str, owner_id: str, folder_id: str = None) -> SourceVideo:
        url = validate_source_url(url)
        if folder_id and not self.store.first(Folder, {"id": folder_id, "user_id": owner_id}):
            raise NotFoundOrDenied("Folder not found")
        video_id = new_id()
        job_id = f"acquire-{video_id}"
        self.store.insert(SourceVideo, {
            "id": video_id,
            "user_id": owner_id,
            "original_url": url,
            "platform": platform_from_url(url),
            "status": VideoStatus.PROCESSING,
            "folder_id": folder_id,
            "job_id": job_id,
        })
        logger.info(f"[Acquire] Source video {video_id} queued for {url}")
        self.tasks.submit(self.run_source_download, video_id, owner_id, url, job_id=job_id, name="acquire-source")
        return self.get_status(video_id, owner_id)

    def get_status(self, video_id: str, owner_id: str) -> SourceVideo:
        video = self.store.first(SourceVideo, {"id": video_id, "user_id": owner_id})
        if not video:
            raise NotFoundOrDenied("Video not found")
        return video

    def run_source_download(self, video_id: str, owner_id: str, url: str):
        self.store.update(SourceVideo, {"id": video_id}, {"status": VideoStatus.DOWNLOADING})

        try:
            info = self.downloader.probe(url)
            details = {k: v for k, v in {
                "title": info.title,
                "duration": info.duration,
                "thumbnail_url": info.thumbnail_url,
                "platform": (info.platform or "").lower() or None,
            }.items() if v is not None}
            if details:
                self.store.update(SourceVideo, {"id": video_id}, details)
        except DownloadError as e:
            logger.warning(f"[Acquire] Metadata probe failed for {video_id}: {e.message}")

        bucket = self.settings.source_video_bucket
        local_path, storage_path = None, None
        try:
            local_path = self.downloader.download(url, self.scratch.ensure(), stem=f"source_{video_id}")
            extension = os.path.splitext(local_path)[1].lstrip(".") or "mp4"
            storage_path = f"{owner_id}/{video_id}.{extension}"
            file_size = os.path.getsize(local_path)
            self.blob_store.upload_file(bucket, storage_path, local_path, content_type=f"video/{extension}")
            self.store.update(SourceVideo, {"id": video_id}, {
                "status": VideoStatus.COMPLETED,
                "storage_path": storage_path,
                "public_url": self.blob_store.get_public_url(bucket, storage_path),
                "file_format": extension,
                "file_size": file_size,
                "error_message": None,
            })
            logger.info(f"[Acquire] Source video {video_id} completed: {storage_path}")
        except (ReactShareError, OSError) as e:
            message = e.message if isinstance(e, ReactShareError) else "Failed to store downloaded video"
            logger.error(f"[Acquire] Source video {video_id} failed: {e}")
            self._discard_blob(bucket, storage_path)
            self._mark_failed(SourceVideo, video_id, {"status": VideoStatus.ERROR, "error_message": message})
        finally:
            cleanup_temp_file(local_path)

    # --- Reactions downloaded from a URL ---

    def acquire_reaction(self, url: str, owner_id: str, title: str = None) -> Reaction:
        url = validate_source_url(url)
        reaction_id = new_id()
        job_id = f"acquire-reaction-{reaction_id}"
        self.store.insert(Reaction, {
            "id": reaction_id,
            "user_id": owner_id,
            "title": title or "Downloaded reaction",
            "status": ReactionStatus.DOWNLOADING,
            "job_id": job_id,
        })
        logger.info(f"[Acquire] Reaction {reaction_id} queued for {url}")
        self.tasks.submit(self.run_reaction_download, reaction_id, owner_id, url, job_id=job_id,
                          name="acquire-reaction")
        return self.store.first(Reaction, {"id": reaction_id, "user_id": owner_id})

    def run_reaction_download(self, reaction_id: str, owner_id: str, url: str):
        bucket = self.settings.reaction_video_bucket
        local_path, storage_path = None, None
        try:
            local_path = self.downloader.download(url, self.scratch.ensure(), stem=f"reaction_{reaction_id}")
            file_name = sanitize_file_name(f"reaction-{reaction_id}{os.path.splitext(local_path)[1] or '.mp4'}")
            storage_path = f"{owner_id}/{reaction_id}/{file_name}"
            self.blob_store.upload_file(bucket, storage_path, local_path)
            self.store.update(Reaction, {"id": reaction_id}, {
                "status": ReactionStatus.UPLOADED,
                "reaction_video_storage_path": storage_path,
                "error_message": None,
            })
            logger.info(f"[Acquire] Reaction {reaction_id} stored: {storage_path}")
        except (ReactShareError, OSError) as e:
            message = e.message if isinstance(e, ReactShareError) else "Failed to store downloaded video"
            logger.error(f"[Acquire] Reaction {reaction_id} failed: {e}")
            self._discard_blob(bucket, storage_path)
            self._mark_failed(Reaction, reaction_id, {"status": ReactionStatus.ERROR, "error_message": message})
        finally:
            cleanup_temp_file(local_path)

    # --- Helpers ---

    def _discard_blob(self, bucket, storage_path):
        if not storage_path:
            return
        try:
            self.blob_store.delete(bucket, storage_path)
        except ReactShareError as e:
            logger.warning(f"[Acquire] Could not remove orphaned blob {storage_path}: {e.message}")

    def _mark_failed(self, model, record_id, patch):
        try:
            self.store.update(model, {"id": record_id}, patch)
        except RecordStoreError as e:
            # The record keeps its in-progress status; it never claims success
            logger.error(f"[Acquire] Could not record failure for {model.__tablename__} {record_id}: {e.message}")
