# api/routes_publish.py
import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import get_services, get_current_user_id
from database.models import ShareStatus
from services.container import Services

logger = logging.getLogger("Publish-API")


# --- 1. PYDANTIC SCHEMAS ---

class PublishCreate(BaseModel):
    reaction_id: str = Field(..., description="Reaction to publish")
    provider: str = Field(..., description="Target provider id, e.g. 'youtube' or 'tiktok'")
    account_id: Optional[str] = Field(default=None, description="Specific connected account to use")
    title: Optional[str] = Field(default=None, max_length=150, description="Title of the social media post")
    description: Optional[str] = Field(default="", description="Caption or description")
    privacy: Literal["public", "unlisted", "private"] = "private"
    tags: List[str] = Field(default_factory=list)
    playlist_id: Optional[str] = None

    def to_metadata(self) -> dict:
        return self.model_dump(include={"title", "description", "privacy", "tags", "playlist_id"})


class ScheduleCreate(PublishCreate):
    scheduled_for: datetime = Field(..., description="UTC time to publish the video")


class ShareResponse(BaseModel):
    id: str
    reaction_id: str
    provider: str
    social_account_id: Optional[str] = None
    provider_post_id: Optional[str] = None
    provider_post_url: Optional[str] = None
    status: ShareStatus
    scheduled_for: Optional[datetime] = None
    published_at: Optional[datetime] = None
    metadata: Optional[dict] = Field(default=None, validation_alias="metadata_")
    analytics: Optional[dict] = None
    last_analytics_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- 2. ROUTER DEFINITION ---

router = APIRouter(prefix="/api/v1/publish", tags=["Publishing Operations"])


@router.post("", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def publish_reaction(body: PublishCreate, user_id: str = Depends(get_current_user_id),
                     services: Services = Depends(get_services)):
    share = services.publishing.publish(body.reaction_id, body.provider, user_id, body.to_metadata(), body.account_id)
    if share.status == ShareStatus.FAILED:
        logger.warning(f"[Publish] Share {share.id} to {body.provider} failed for user {user_id}")
        # Detail stays in the share metadata; the client gets the short message and the id to look it up
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": (share.metadata_ or {}).get("error", "Publishing failed"), "share_id": share.id},
        )
    return share


@router.post("/schedule", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def schedule_post(body: ScheduleCreate, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    share = services.publishing.schedule(
        body.reaction_id, body.provider, user_id, body.to_metadata(), body.scheduled_for, body.account_id)
    logger.info(f"[Schedule] Share {share.id} queued for {share.scheduled_for}")
    return share


@router.delete("/schedule/{share_id}")
def cancel_scheduled_post(share_id: str, user_id: str = Depends(get_current_user_id),
                          services: Services = Depends(get_services)):
    services.publishing.cancel_scheduled(share_id, user_id)
    logger.info(f"[Schedule] Share {share_id} cancelled by user {user_id}")
    return {"success": True}


@router.get("/shares", response_model=List[ShareResponse])
def list_shares(provider: Optional[str] = None, reaction_id: Optional[str] = None, status: Optional[str] = None,
                user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return services.publishing.list_shares(user_id, provider, reaction_id, status)
