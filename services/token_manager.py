# services/token_manager.py
import logging
from datetime import timedelta

import requests

from database.models import SocialAccount, AccountStatus
from publishers import registry
from publishers.registry import Endpoint
from services.errors import TokenRefreshError, UnknownProvider
from services.utils import utcnow, as_utc

logger = logging.getLogger("Token-Manager")

# Refresh this long before the provider's expiry so a multi-step call never races it
SAFETY_BUFFER = timedelta(minutes=5)
DEFAULT_TOKEN_TTL_SECONDS = 3600


class TokenManager:
    """
    Expiry detection and refresh-token exchange for stored social accounts.
    No retries happen here; a failed refresh is reported to the caller.
    """

    def __init__(self, settings, store):
        self.settings = settings
        self.store = store

    @staticmethod
    def is_expired(account, now=None) -> bool:
        expires_at = as_utc(account.token_expires_at)
        if expires_at is None:
            return False
        now = now or utcnow()
        return now + SAFETY_BUFFER >= expires_at

    def refresh(self, account) -> SocialAccount:
        """
        Exchanges the stored refresh token for a new access token and persists it.
        Raises TokenRefreshError (account marked token_expired) when the provider refuses.
        """
        provider = registry.lookup(account.provider)
        if provider is None:
            raise UnknownProvider(f"Unknown provider '{account.provider}'")

        if not account.refresh_token:
            logger.warning(f"[Token] Account {account.id} ({provider.name}) has no refresh token")
            self._mark_expired(account)
            raise TokenRefreshError(f"{provider.name} session expired, reconnect the account",
                                    raw_body={"error": "missing_refresh_token"}, provider=provider.id.value)

        client_id, client_secret = self.settings.oauth_client(provider.auth_provider)
        token_url = provider.endpoint(Endpoint.TOKEN_REFRESH)

        logger.info(f"[Token] Refreshing {provider.name} token for account {account.id}")
        try:
            response = requests.post(
                token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data={
                    provider.client_id_param: client_id,
                    "client_secret": client_secret,
                    "refresh_token": account.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.RequestException as e:
            # Network failure says nothing about the token itself, status stays as is
            logger.error(f"[Token] Network error refreshing {provider.name} token: {e}")
            raise TokenRefreshError(f"Could not reach {provider.name}", raw_body=str(e),
                                    provider=provider.id.value)

        try:
            data = response.json()
        except ValueError:
            data = {"error": "invalid_response", "body": response.text[:2000]}

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not response.ok or not access_token or (isinstance(data, dict) and data.get("error")):
            logger.error(f"[Token] {provider.name} refused refresh for account {account.id} "
                         f"(HTTP {response.status_code})")
            self._mark_expired(account)
            raise TokenRefreshError(f"{provider.name} refused the token refresh", raw_body=data,
                                    provider=provider.id.value)

        try:
            ttl = int(data.get("expires_in") or DEFAULT_TOKEN_TTL_SECONDS)
        except (TypeError, ValueError):
            ttl = DEFAULT_TOKEN_TTL_SECONDS

        patch = {
            "access_token": access_token,
            "token_expires_at": utcnow() + timedelta(seconds=ttl),
            "status": AccountStatus.ACTIVE,
        }
        # Some providers (TikTok) rotate the refresh token on every exchange
        if data.get("refresh_token"):
            patch["refresh_token"] = data["refresh_token"]

        updated = self.store.update(SocialAccount, {"id": account.id}, patch)
        logger.info(f"[Token] {provider.name} token refreshed for account {account.id}")
        return updated[0] if updated else account

    def ensure_fresh(self, account) -> SocialAccount:
        if self.is_expired(account):
            return self.refresh(account)
        return account

    def _mark_expired(self, account):
        self.store.update(SocialAccount, {"id": account.id}, {"status": AccountStatus.TOKEN_EXPIRED})
