# api/routes_accounts.py
import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.deps import get_services, get_current_user_id
from database.models import AccountStatus
from publishers import registry
from services import capabilities
from services.container import Services
from services.errors import NotFoundOrDenied

logger = logging.getLogger("Accounts-API")


# --- 1. PYDANTIC SCHEMAS ---

class AccountResponse(BaseModel):
    """Connected account without its tokens."""
    id: str
    provider: str
    provider_account_id: Optional[str] = None
    provider_username: Optional[str] = None
    scope: Optional[str] = None
    status: AccountStatus
    token_expires_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AccountUpdate(BaseModel):
    enabled: bool = Field(..., description="false disconnects the account, true reactivates it")


class CapabilityResponse(BaseModel):
    account_id: str
    provider: str
    capability: str
    supported: bool
    required_scopes: Optional[str] = None


# --- 2. ROUTER DEFINITION ---

router = APIRouter(prefix="/api/v1", tags=["Accounts & Providers"])


@router.get("/providers")
def list_providers(user_id: str = Depends(get_current_user_id)) -> List[Dict]:
    return [p.to_dict() for p in registry.list_available()]


@router.get("/accounts", response_model=List[AccountResponse])
def list_accounts(user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    return services.accounts.list_accounts(user_id)


@router.get("/accounts/profile")
def get_user_profile(user_id: str = Depends(get_current_user_id), services: Services = Depends(get_services)):
    """Linked accounts summary for the dashboard UI."""
    return services.accounts.profile_summary(user_id)


@router.patch("/accounts/{account_id}", response_model=AccountResponse)
def update_account(account_id: str, body: AccountUpdate, user_id: str = Depends(get_current_user_id),
                   services: Services = Depends(get_services)):
    account = services.accounts.set_account_enabled(account_id, user_id, body.enabled)
    logger.info(f"[Accounts] Account {account_id} {'enabled' if body.enabled else 'disabled'} by user {user_id}")
    return account


@router.post("/accounts/{account_id}/refresh", response_model=AccountResponse)
def refresh_account(account_id: str, user_id: str = Depends(get_current_user_id),
                    services: Services = Depends(get_services)):
    logger.info(f"[Accounts] Manual token refresh requested for account {account_id}")
    return services.accounts.refresh_account(account_id, user_id)


@router.get("/accounts/{account_id}/capabilities/{capability}", response_model=CapabilityResponse)
def check_capability(account_id: str, capability: str, user_id: str = Depends(get_current_user_id),
                     services: Services = Depends(get_services)):
    account = next((a for a in services.accounts.list_accounts(user_id) if a.id == account_id), None)
    if account is None:
        raise NotFoundOrDenied("Account not found")
    supported = capabilities.has_capability(account, capability)
    scopes = None
    if supported:
        operation = {"upload": "upload", "analytics": "read"}.get(capability, "write")
        scopes = capabilities.required_scopes(account.provider, operation)
    return CapabilityResponse(account_id=account.id, provider=account.provider, capability=capability,
                              supported=supported, required_scopes=scopes)
