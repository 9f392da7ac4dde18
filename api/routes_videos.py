# api/routes_videos.py
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.deps import get_services, get_current_user_id
from database.models import VideoStatus
from services.container import Services

logger = logging.getLogger("Videos-API")


# --- 1. PYDANTIC SCHEMAS ---

class AcquireRequest(BaseModel):
    url: str = Field(..., description="Video URL on a supported platform")
    folder_id: Optional[str] = None


class AcquireResponse(BaseModel):
    id: str
    status: VideoStatus
    job_id: Optional[str] = None

    class Config:
        from_attributes = True


class VideoResponse(BaseModel):
    id: str
    original_url: str
    storage_path: Optional[str] = None
    public_url: Optional[str] = None
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    platform: Optional[str] = None
    status: VideoStatus
    error_message: Optional[str] = None
    folder_id: Optional[str] = None
    duration: Optional[float] = None
    file_format: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FolderResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LibraryResponse(BaseModel):
    videos: List[VideoResponse]
    folders: List[FolderResponse]


class VideoIdsRequest(BaseModel):
    video_ids: List[str] = Field(..., min_length=1)


class MoveRequest(VideoIdsRequest):
    folder_id: Optional[str] = Field(default=None, description="null moves the videos out of any folder")


# --- 2. ROUTER DEFINITION ---

router = APIRouter(prefix="/api/v1/videos", tags=["Source Videos"])


@router.post("", response_model=AcquireResponse, status_code=status.HTTP_202_ACCEPTED)
def acquire_video(body: AcquireRequest, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    """Starts the download in the background; poll /videos/{id}/status for the outcome."""
    return services.acquisition.acquire(body.url, user_id, body.folder_id)


@router.get("", response_model=LibraryResponse)
def get_library(folder_id: Optional[str] = None, user_id: str = Depends(get_current_user_id),
                services: Services = Depends(get_services)):
    return services.library.list_library(user_id, folder_id)


@router.get("/{video_id}/status", response_model=VideoResponse)
def get_video_status(video_id: str, user_id: str = Depends(get_current_user_id),
                     services: Services = Depends(get_services)):
    return services.acquisition.get_status(video_id, user_id)


@router.post("/delete")
def delete_videos(body: VideoIdsRequest, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    deleted = services.library.delete_videos(user_id, body.video_ids)
    logger.info(f"[Library] User {user_id} deleted {deleted} of {len(body.video_ids)} videos")
    return {"deleted": deleted}


@router.post("/move")
def move_videos(body: MoveRequest, user_id: str = Depends(get_current_user_id),
                services: Services = Depends(get_services)):
    moved = services.library.move_videos(user_id, body.video_ids, body.folder_id)
    logger.info(f"[Library] User {user_id} moved {moved} videos to folder {body.folder_id or 'root'}")
    return {"moved": moved}
