# services/accounts.py
import logging

from database.models import SocialAccount, AccountStatus
from publishers import registry
from services.errors import NotFoundOrDenied, InvalidRequest

logger = logging.getLogger("Accounts")


def _display_name(account) -> str:
    """Best display name available for the dashboard, falling back per provider."""
    profile = account.profile_data or {}
    user_info = profile.get("user_info") or {}
    inner_user = user_info.get("user", {}) if isinstance(user_info.get("user"), dict) else user_info
    provider = registry.lookup(account.provider)
    return (
        account.provider_username
        or profile.get("display_name")
        or inner_user.get("display_name")
        or profile.get("page_name")
        or (profile.get("snippet") or {}).get("title")
        or f"{provider.name if provider else account.provider} User"
    )


class AccountService:

    def __init__(self, store, token_manager):
        self.store = store
        self.token_manager = token_manager

    def _owned(self, account_id: str, owner_id: str) -> SocialAccount:
        account = self.store.first(SocialAccount, {"id": account_id, "user_id": owner_id})
        if not account:
            raise NotFoundOrDenied("Account not found")
        return account

    def list_accounts(self, owner_id: str):
        return self.store.select(SocialAccount, {"user_id": owner_id}, order_by="created_at", descending=True)

    def profile_summary(self, owner_id: str):
        """Connection state per provider, most recently updated account first."""
        profiles = {}
        for account in self.store.select(SocialAccount, {"user_id": owner_id}, order_by="updated_at", descending=True):
            if account.provider in profiles:
                continue
            profiles[account.provider] = {
                "connected": account.status == AccountStatus.ACTIVE,
                "status": account.status.value,
                "username": _display_name(account),
                "updated_at": account.updated_at.strftime("%Y-%m-%d") if account.updated_at else None,
            }
        return {"profiles": profiles}

    def set_account_enabled(self, account_id: str, owner_id: str, enabled: bool) -> SocialAccount:
        account = self._owned(account_id, owner_id)
        status = AccountStatus.ACTIVE if enabled else AccountStatus.DISCONNECTED
        if enabled and account.status == AccountStatus.TOKEN_EXPIRED:
            raise InvalidRequest("Token expired, refresh or reconnect the account first")
        updated = self.store.update(SocialAccount, {"id": account.id}, {"status": status})
        logger.info(f"[Accounts] Account {account.id} ({account.provider}) is now {status.value}")
        return updated[0]

    def refresh_account(self, account_id: str, owner_id: str) -> SocialAccount:
        account = self._owned(account_id, owner_id)
        if account.status == AccountStatus.DISCONNECTED:
            raise InvalidRequest("Account is disconnected")
        return self.token_manager.refresh(account)
