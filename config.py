# config.py
import os
import logging
import tempfile
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from services.errors import ConfigurationError

logger = logging.getLogger("Config")

REQUIRED_VARIABLES = (
    "DATABASE_URL",
    "ORACLE_NAMESPACE",
    "ORACLE_REGION",
    "ORACLE_USER_OCID",
    "ORACLE_TENANCY_OCID",
    "ORACLE_FINGERPRINT",
    "ORACLE_KEY_FILE",
)

# OAuth application credentials, keyed by the auth provider each platform signs in with
OAUTH_CLIENT_VARIABLES = {
    "google": ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"),
    "tiktok": ("TIKTOK_CLIENT_KEY", "TIKTOK_CLIENT_SECRET"),
    "facebook": ("FACEBOOK_APP_ID", "FACEBOOK_APP_SECRET"),
    "twitter": ("TWITTER_CLIENT_ID", "TWITTER_CLIENT_SECRET"),
}


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer")


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration. Built once at startup and handed to every
    component constructor; nothing else reads the environment.
    """
    database_url: str
    oracle_namespace: str
    oracle_region: str
    oracle_user_ocid: str = ""
    oracle_tenancy_ocid: str = ""
    oracle_fingerprint: str = ""
    oracle_key_file: str = ""

    source_video_bucket: str = "source-videos"
    reaction_video_bucket: str = "reaction-videos"
    signed_url_ttl_seconds: int = 300
    scratch_dir: str = field(default_factory=lambda: os.path.join(tempfile.gettempdir(), "reactshare"))

    ytdlp_binary: str = "yt-dlp"
    download_max_filesize: str = "50m"
    download_timeout_seconds: int = 900
    http_timeout_seconds: int = 60

    auth_user_header: str = "X-Authenticated-User"
    allow_multiple_accounts_per_provider: bool = True
    deduplicate_publishes: bool = False

    scheduler_interval_seconds: int = 60
    analytics_sync_interval_minutes: int = 360
    log_level: str = "INFO"

    oauth_clients: Dict[str, Tuple[str, str]] = field(default_factory=dict)

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        """
        Reads the environment (after loading .env) and fails fast when a
        required value is missing.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        missing = [name for name in REQUIRED_VARIABLES if not env.get(name)]
        if missing:
            logger.error(f"[Config] Missing required environment variables: {', '.join(missing)}")
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        oauth_clients = {}
        for auth_provider, (id_var, secret_var) in OAUTH_CLIENT_VARIABLES.items():
            client_id, client_secret = env.get(id_var), env.get(secret_var)
            if client_id and client_secret:
                oauth_clients[auth_provider] = (client_id, client_secret)

        scratch_dir = env.get("SCRATCH_DIR") or os.path.join(tempfile.gettempdir(), "reactshare")

        return cls(
            database_url=env["DATABASE_URL"],
            oracle_namespace=env["ORACLE_NAMESPACE"],
            oracle_region=env["ORACLE_REGION"],
            oracle_user_ocid=env["ORACLE_USER_OCID"],
            oracle_tenancy_ocid=env["ORACLE_TENANCY_OCID"],
            oracle_fingerprint=env["ORACLE_FINGERPRINT"],
            oracle_key_file=env["ORACLE_KEY_FILE"],
            source_video_bucket=env.get("SOURCE_VIDEO_BUCKET") or "source-videos",
            reaction_video_bucket=env.get("REACTION_VIDEO_BUCKET") or "reaction-videos",
            signed_url_ttl_seconds=_as_int("SIGNED_URL_TTL_SECONDS", env.get("SIGNED_URL_TTL_SECONDS"), 300),
            scratch_dir=scratch_dir,
            ytdlp_binary=env.get("YTDLP_BINARY") or "yt-dlp",
            download_max_filesize=env.get("DOWNLOAD_MAX_FILESIZE") or "50m",
            download_timeout_seconds=_as_int("DOWNLOAD_TIMEOUT_SECONDS", env.get("DOWNLOAD_TIMEOUT_SECONDS"), 900),
            http_timeout_seconds=_as_int("HTTP_TIMEOUT_SECONDS", env.get("HTTP_TIMEOUT_SECONDS"), 60),
            auth_user_header=env.get("AUTH_USER_HEADER") or "X-Authenticated-User",
            allow_multiple_accounts_per_provider=_as_bool(env.get("ALLOW_MULTIPLE_ACCOUNTS_PER_PROVIDER"), True),
            deduplicate_publishes=_as_bool(env.get("DEDUPLICATE_PUBLISHES"), False),
            scheduler_interval_seconds=_as_int("SCHEDULER_INTERVAL_SECONDS", env.get("SCHEDULER_INTERVAL_SECONDS"), 60),
            analytics_sync_interval_minutes=_as_int(
                "ANALYTICS_SYNC_INTERVAL_MINUTES", env.get("ANALYTICS_SYNC_INTERVAL_MINUTES"), 360
            ),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            oauth_clients=oauth_clients,
        )

    def oauth_client(self, auth_provider: str) -> Tuple[str, str]:
        """Returns (client_id, client_secret) for an auth provider or raises ConfigurationError."""
        credentials = self.oauth_clients.get(auth_provider)
        if not credentials:
            id_var, secret_var = OAUTH_CLIENT_VARIABLES.get(auth_provider, ("?", "?"))
            logger.error(f"[Config] OAuth credentials for '{auth_provider}' are not set ({id_var}/{secret_var})")
            raise ConfigurationError(f"{auth_provider} integration is not configured")
        return credentials
