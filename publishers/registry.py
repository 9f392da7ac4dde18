# publishers/registry.py
"""
Static catalog of the social platforms the engine can talk to.

Every provider is one frozen ProviderConfig. Endpoints are looked up by the
Endpoint enum; asking for an endpoint a provider does not define raises
EndpointNotDefined instead of quietly handing back None.
"""
import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from services.errors import EndpointNotDefined, UnknownProvider, ProviderUnavailable


class ProviderId(str, enum.Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"


class Capability(str, enum.Enum):
    UPLOAD = "upload"
    PLAYLISTS = "playlists"
    ANALYTICS = "analytics"
    SCHEDULING = "scheduling"
    MONETIZATION = "monetization"


class Endpoint(str, enum.Enum):
    USER_INFO = "userInfo"
    TOKEN_REFRESH = "tokenRefresh"
    VIDEOS = "videos"
    PLAYLISTS = "playlists"
    PLAYLIST_ITEMS = "playlistItems"
    UPLOAD = "upload"
    ANALYTICS = "analytics"


class ScopeOperation(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    UPLOAD = "upload"


@dataclass(frozen=True)
class OAuthScopes:
    read: str
    write: str
    upload: Optional[str] = None

    def for_operation(self, operation: ScopeOperation) -> str:
        if operation == ScopeOperation.READ:
            return self.read
        if operation == ScopeOperation.WRITE:
            return self.write
        # Providers without a dedicated upload scope upload with their write scope
        return self.upload or self.write


@dataclass(frozen=True)
class ProviderConfig:
    id: ProviderId
    name: str
    auth_provider: str
    scopes: OAuthScopes
    endpoints: Mapping[Endpoint, str]
    analytics_metrics: Tuple[str, ...]
    features: frozenset
    is_available: bool
    auth_callback_url: str = "/dashboard/social"
    # TikTok names the OAuth client id "client_key" in its token requests
    client_id_param: str = "client_id"

    def supports(self, capability: Capability) -> bool:
        return Capability(capability) in self.features

    def has_endpoint(self, endpoint: Endpoint) -> bool:
        return Endpoint(endpoint) in self.endpoints

    def endpoint(self, endpoint: Endpoint) -> str:
        try:
            return self.endpoints[Endpoint(endpoint)]
        except KeyError:
            raise EndpointNotDefined(f"{self.name} does not define a '{Endpoint(endpoint).value}' endpoint")

    def to_dict(self) -> Dict:
        return {
            "id": self.id.value,
            "name": self.name,
            "scopes": {"read": self.scopes.read, "write": self.scopes.write, "upload": self.scopes.upload},
            "endpoints": {name.value: url for name, url in self.endpoints.items()},
            "analytics_metrics": list(self.analytics_metrics),
            "features": {c.value: c in self.features for c in Capability},
            "is_available": self.is_available,
            "auth_callback_url": self.auth_callback_url,
        }


def _endpoints(**urls) -> Mapping[Endpoint, str]:
    return MappingProxyType({Endpoint(name): url for name, url in urls.items()})


YOUTUBE = ProviderConfig(
    id=ProviderId.YOUTUBE,
    name="YouTube",
    auth_provider="google",
    scopes=OAuthScopes(
        read="https://www.googleapis.com/auth/youtube.readonly",
        write="https://www.googleapis.com/auth/youtube.force-ssl",
        upload="https://www.googleapis.com/auth/youtube.upload",
    ),
    endpoints=_endpoints(
        userInfo="https://www.googleapis.com/youtube/v3/channels?part=snippet,statistics&mine=true",
        tokenRefresh="https://oauth2.googleapis.com/token",
        videos="https://www.googleapis.com/youtube/v3/videos",
        playlists="https://www.googleapis.com/youtube/v3/playlists",
        playlistItems="https://www.googleapis.com/youtube/v3/playlistItems",
        upload="https://www.googleapis.com/upload/youtube/v3/videos",
        analytics="https://youtubeanalytics.googleapis.com/v2/reports",
    ),
    analytics_metrics=(
        "views", "likes", "comments", "shares", "watchTime",
        "averageViewDuration", "estimatedRevenue", "subscribersGained",
    ),
    features=frozenset({
        Capability.UPLOAD, Capability.PLAYLISTS, Capability.ANALYTICS,
        Capability.SCHEDULING, Capability.MONETIZATION,
    }),
    is_available=True,
)

TIKTOK = ProviderConfig(
    id=ProviderId.TIKTOK,
    name="TikTok",
    auth_provider="tiktok",
    scopes=OAuthScopes(read="user.info.basic,video.list", write="video.upload,video.publish"),
    endpoints=_endpoints(
        userInfo="https://open.tiktokapis.com/v2/user/info/",
        tokenRefresh="https://open.tiktokapis.com/v2/oauth/token/",
        videos="https://open.tiktokapis.com/v2/video/list/",
        upload="https://open-api.tiktok.com/share/video/upload/",
        analytics="https://open.tiktokapis.com/v2/video/query/",
    ),
    analytics_metrics=("views", "likes", "comments", "shares", "profile_views", "follower_count"),
    # The TikTok API has no scheduled posting
    features=frozenset({Capability.UPLOAD, Capability.ANALYTICS}),
    is_available=True,
    client_id_param="client_key",
)

INSTAGRAM = ProviderConfig(
    id=ProviderId.INSTAGRAM,
    name="Instagram",
    auth_provider="facebook",
    scopes=OAuthScopes(read="user_profile,user_media", write="user_media"),
    endpoints=_endpoints(
        userInfo="https://graph.instagram.com/me",
        tokenRefresh="https://graph.instagram.com/refresh_access_token",
        upload="https://graph.facebook.com/v22.0",
    ),
    analytics_metrics=("impressions", "reach", "engagement", "likes", "comments"),
    features=frozenset({Capability.UPLOAD, Capability.ANALYTICS, Capability.SCHEDULING}),
    is_available=False,
)

TWITTER = ProviderConfig(
    id=ProviderId.TWITTER,
    name="Twitter",
    auth_provider="twitter",
    scopes=OAuthScopes(read="tweet.read,users.read", write="tweet.write,tweet.read"),
    endpoints=_endpoints(
        userInfo="https://api.twitter.com/2/users/me",
        tokenRefresh="https://api.twitter.com/2/oauth2/token",
        upload="https://upload.twitter.com/1.1/media/upload.json",
    ),
    analytics_metrics=("impressions", "engagements", "likes", "retweets", "replies"),
    features=frozenset({Capability.UPLOAD, Capability.ANALYTICS, Capability.SCHEDULING}),
    is_available=False,
)

FACEBOOK = ProviderConfig(
    id=ProviderId.FACEBOOK,
    name="Facebook",
    auth_provider="facebook",
    scopes=OAuthScopes(
        read="public_profile,email",
        write="pages_manage_posts",
        upload="pages_read_engagement,pages_manage_posts,pages_show_list",
    ),
    endpoints=_endpoints(
        userInfo="https://graph.facebook.com/me",
        tokenRefresh="https://graph.facebook.com/oauth/access_token",
        videos="https://graph.facebook.com/me/videos",
        upload="https://graph.facebook.com/v25.0",
    ),
    analytics_metrics=("reach", "impressions", "engagement", "video_views", "post_reactions"),
    features=frozenset({Capability.UPLOAD, Capability.ANALYTICS, Capability.SCHEDULING}),
    is_available=False,
)

PROVIDERS: Mapping[ProviderId, ProviderConfig] = MappingProxyType({
    p.id: p for p in (YOUTUBE, INSTAGRAM, TWITTER, FACEBOOK, TIKTOK)
})


def lookup(provider_id) -> Optional[ProviderConfig]:
    """Returns the provider config, or None for an unknown identifier."""
    if isinstance(provider_id, ProviderId):
        return PROVIDERS.get(provider_id)
    try:
        return PROVIDERS.get(ProviderId(str(provider_id).lower()))
    except ValueError:
        return None


def list_available():
    return [p for p in PROVIDERS.values() if p.is_available]


def require(provider_id, available_only: bool = True) -> ProviderConfig:
    """Lookup for callers that cannot continue without a provider."""
    provider = lookup(provider_id)
    if provider is None:
        raise UnknownProvider(f"Unknown provider '{provider_id}'")
    if available_only and not provider.is_available:
        raise ProviderUnavailable(f"{provider.name} is not available yet")
    return provider
