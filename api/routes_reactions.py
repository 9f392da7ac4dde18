# api/routes_reactions.py
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.deps import get_services, get_current_user_id
from database.models import ReactionStatus
from services.container import Services

logger = logging.getLogger("Reactions-API")


# --- 1. PYDANTIC SCHEMAS ---

class ReactionCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=500)
    source_video_id: Optional[str] = None
    source_video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class ReactionResponse(BaseModel):
    id: str
    title: Optional[str] = None
    source_video_id: Optional[str] = None
    source_video_url: Optional[str] = None
    reaction_video_storage_path: Optional[str] = None
    thumbnail_url: Optional[str] = None
    status: ReactionStatus
    error_message: Optional[str] = None
    job_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UploadTargetRequest(BaseModel):
    reaction_id: str
    file_name: str = Field(..., min_length=1, max_length=255)


class CompleteUploadRequest(BaseModel):
    storage_path: str = Field(..., min_length=1)


class ReactionDownloadRequest(BaseModel):
    url: str
    title: Optional[str] = None


# --- 2. ROUTER DEFINITION ---

router = APIRouter(prefix="/api/v1/reactions", tags=["Reactions"])


@router.post("", response_model=ReactionResponse, status_code=status.HTTP_201_CREATED)
def create_reaction(body: ReactionCreate, user_id: str = Depends(get_current_user_id),
                    services: Services = Depends(get_services)):
    return services.reactions.create_reaction(
        user_id, body.title, body.source_video_id, body.source_video_url, body.thumbnail_url)


@router.get("", response_model=List[ReactionResponse])
def list_reactions(user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return services.reactions.list_reactions(user_id)


@router.get("/lookup", response_model=List[ReactionResponse])
def lookup_reactions(source_video_id: str, user_id: str = Depends(get_current_user_id),
                     services: Services = Depends(get_services)):
    return services.reactions.lookup_by_source_video(source_video_id, user_id)


@router.post("/download", response_model=ReactionResponse, status_code=status.HTTP_202_ACCEPTED)
def download_reaction(body: ReactionDownloadRequest, user_id: str = Depends(get_current_user_id),
                      services: Services = Depends(get_services)):
    logger.info(f"[Reactions] Download requested by user {user_id}: {body.url}")
    return services.acquisition.acquire_reaction(body.url, user_id, body.title)


@router.post("/upload")
def request_upload_target(body: UploadTargetRequest, user_id: str = Depends(get_current_user_id),
                          services: Services = Depends(get_services)):
    """Returns the storage path the client uploads the recording to."""
    storage_path = services.reactions.request_upload_target(body.reaction_id, user_id, body.file_name)
    return {"storage_path": storage_path, "bucket": services.settings.reaction_video_bucket}


@router.patch("/{reaction_id}/complete-upload", response_model=ReactionResponse)
def complete_upload(reaction_id: str, body: CompleteUploadRequest, user_id: str = Depends(get_current_user_id),
                    services: Services = Depends(get_services)):
    return services.reactions.complete_upload(reaction_id, user_id, body.storage_path)


@router.get("/{reaction_id}/download-url")
def get_download_url(reaction_id: str, user_id: str = Depends(get_current_user_id),
                     services: Services = Depends(get_services)):
    url = services.reactions.get_download_url(reaction_id, user_id)
    return {"url": url, "expires_in": services.settings.signed_url_ttl_seconds}


@router.get("/{reaction_id}", response_model=ReactionResponse)
def get_reaction(reaction_id: str, user_id: str = Depends(get_current_user_id),
                 services: Services = Depends(get_services)):
    return services.reactions.get_reaction(reaction_id, user_id)
