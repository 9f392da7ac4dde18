# api/routes_analytics.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from api.deps import get_services, get_current_user_id
from services.container import Services

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.get("")
def get_analytics(share_id: Optional[str] = None, provider: Optional[str] = None, post_id: Optional[str] = None,
                  user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Analytics by share id, or by provider + provider post id."""
    result = services.analytics.fetch_analytics(user_id, share_id=share_id, provider_id=provider, post_id=post_id)
    return result.to_dict()


@router.get("/account")
def get_account_analytics(provider: Optional[str] = None, account_id: Optional[str] = None,
                          since: Optional[datetime] = None, user_id: str = Depends(get_current_user_id),
                          services: Services = Depends(get_services)):
    """Channel or profile totals, daily series and top videos of a connected account."""
    result = services.analytics.fetch_account_analytics(user_id, provider, account_id=account_id, since=since)
    return result.to_dict()
