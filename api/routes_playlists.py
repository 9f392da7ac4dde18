# api/routes_playlists.py
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.deps import get_services, get_current_user_id
from services.container import Services

logger = logging.getLogger("Playlists-API")

Privacy = Literal["public", "unlisted", "private"]


class PlaylistCreate(BaseModel):
    title: str = Field(..., max_length=150)
    description: Optional[str] = ""
    privacy: Privacy = "private"


class PlaylistUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=150)
    description: Optional[str] = None
    privacy: Optional[Privacy] = None


class PlaylistResponse(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = ""
    item_count: int = 0
    visibility: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: Optional[str] = None


class PlaylistVideoAdd(BaseModel):
    video_id: str = Field(..., description="Provider video id")


class PlaylistVideoResponse(BaseModel):
    video_id: Optional[str] = None
    item_id: str = Field(..., description="Playlist item id, needed to remove the video")
    title: Optional[str] = None
    description: Optional[str] = ""
    thumbnail_url: Optional[str] = None
    position: Optional[int] = None
    published_at: Optional[str] = None


router = APIRouter(prefix="/api/v1/playlists", tags=["Playlists"])


@router.get("", response_model=List[PlaylistResponse])
def list_playlists(provider: str = "youtube", user_id: str = Depends(get_current_user_id),
                   services: Services = Depends(get_services)):
    return services.playlists.list_playlists(user_id, provider)


@router.post("", response_model=PlaylistResponse, status_code=status.HTTP_201_CREATED)
def create_playlist(body: PlaylistCreate, provider: str = "youtube", user_id: str = Depends(get_current_user_id),
                    services: Services = Depends(get_services)):
    playlist = services.playlists.create_playlist(user_id, body.title, body.description, body.privacy, provider)
    logger.info(f"[Playlists] User {user_id} created playlist {playlist['id']}")
    return playlist


@router.get("/{playlist_id}", response_model=PlaylistResponse)
def get_playlist(playlist_id: str, provider: str = "youtube", user_id: str = Depends(get_current_user_id),
                 services: Services = Depends(get_services)):
    return services.playlists.get_playlist(user_id, playlist_id, provider)


@router.patch("/{playlist_id}", response_model=PlaylistResponse)
def update_playlist(playlist_id: str, body: PlaylistUpdate, provider: str = "youtube",
                    user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return services.playlists.update_playlist(user_id, playlist_id, body.title, body.description, body.privacy,
                                              provider)


@router.delete("/{playlist_id}")
def delete_playlist(playlist_id: str, provider: str = "youtube", user_id: str = Depends(get_current_user_id),
                    services: Services = Depends(get_services)):
    services.playlists.delete_playlist(user_id, playlist_id, provider)
    logger.info(f"[Playlists] User {user_id} deleted playlist {playlist_id}")
    return {"success": True}


@router.get("/{playlist_id}/videos", response_model=List[PlaylistVideoResponse])
def list_playlist_videos(playlist_id: str, provider: str = "youtube", user_id: str = Depends(get_current_user_id),
                         services: Services = Depends(get_services)):
    return services.playlists.list_videos(user_id, playlist_id, provider)


@router.post("/{playlist_id}/videos", response_model=PlaylistVideoResponse, status_code=status.HTTP_201_CREATED)
def add_playlist_video(playlist_id: str, body: PlaylistVideoAdd, provider: str = "youtube",
                       user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return services.playlists.add_video(user_id, playlist_id, body.video_id, provider)


@router.delete("/{playlist_id}/videos")
def remove_playlist_video(playlist_id: str, item_id: str, provider: str = "youtube",
                          user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """item_id is the playlist item id returned when listing or adding, not the video id."""
    services.playlists.remove_video(user_id, playlist_id, item_id, provider)
    return {"success": True}
