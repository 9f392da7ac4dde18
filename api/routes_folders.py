# api/routes_folders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.deps import get_services, get_current_user_id
from api.routes_videos import FolderResponse
from services.container import Services


class FolderCreate(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None


router = APIRouter(prefix="/api/v1/folders", tags=["Folders"])


@router.get("", response_model=List[FolderResponse])
def list_folders(user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return services.library.list_folders(user_id)


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
def create_folder(body: FolderCreate, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    return services.library.create_folder(user_id, body.name, body.description)


@router.patch("/{folder_id}", response_model=FolderResponse)
def update_folder(folder_id: str, body: FolderUpdate, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    return services.library.update_folder(folder_id, user_id, body.name, body.description)


@router.delete("/{folder_id}")
def delete_folder(folder_id: str, user_id: str = Depends(get_current_user_id),
                  services: Services = Depends(get_services)):
    """Videos in the folder are kept and become unfiled."""
    services.library.delete_folder(folder_id, user_id)
    return {"success": True}
