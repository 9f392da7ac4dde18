# services/analytics.py
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List

from database.models import SocialAccount, AccountStatus, SocialShare, ShareStatus
from publishers import registry
from publishers.registry import Capability
from services import capabilities
from services.errors import (
    ReactShareError, AccountNotFound, NotFoundOrDenied, InvalidRequest, CapabilityNotSupported,
)
from services.utils import utcnow

logger = logging.getLogger("Analytics")


@dataclass
class WatchTime:
    hours: int = 0
    minutes: int = 0
    seconds: int = 0


@dataclass
class Demographics:
    age_groups: Dict[str, float] = field(default_factory=dict)
    genders: Dict[str, float] = field(default_factory=dict)
    countries: Dict[str, float] = field(default_factory=dict)


@dataclass
class NormalizedAnalytics:
    provider: str
    post_id: str
    views: int = 0
    likes: int = 0
    dislikes: int = 0
    comments: int = 0
    favorites: int = 0
    shares: int = 0
    watch_time: WatchTime = field(default_factory=WatchTime)
    average_view_duration: float = 0.0
    average_view_percentage: float = 0.0
    demographics: Demographics = field(default_factory=Demographics)
    data_source: str = "basic"
    fetched_at: str = None

    def to_dict(self) -> Dict:
        return asdict(self)


def _int(value) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _breakdown(values) -> Dict[str, float]:
    if not isinstance(values, dict):
        return {}
    return {str(k): _float(v) for k, v in values.items() if k is not None}


def normalize(provider: str, post_id: str, basic: Dict, rich: Dict = None) -> NormalizedAnalytics:
    """Folds provider statistics and the optional detailed report into one fixed shape."""
    rich = rich or {}
    total_seconds = int(round(_float(rich.get("watch_minutes")) * 60))
    demographics = rich.get("demographics") or {}
    return NormalizedAnalytics(
        provider=provider,
        post_id=post_id,
        views=_int(basic.get("views")),
        likes=_int(basic.get("likes")),
        dislikes=_int(basic.get("dislikes")),
        comments=_int(basic.get("comments")),
        favorites=_int(basic.get("favorites")),
        shares=_int(basic.get("shares") or rich.get("shares")),
        watch_time=WatchTime(
            hours=total_seconds // 3600,
            minutes=(total_seconds % 3600) // 60,
            seconds=total_seconds % 60,
        ),
        average_view_duration=_float(rich.get("average_view_duration")),
        average_view_percentage=_float(rich.get("average_view_percentage")),
        demographics=Demographics(
            age_groups=_breakdown(demographics.get("age_groups")),
            genders=_breakdown(demographics.get("genders")),
            countries=_breakdown(demographics.get("countries")),
        ),
        data_source="real_api" if rich else "basic",
        fetched_at=utcnow().isoformat(),
    )


@dataclass
class DailyMetrics:
    date: str
    views: int = 0
    watch_minutes: float = 0.0
    followers_gained: int = 0
    followers_lost: int = 0


@dataclass
class TopVideo:
    id: str
    title: str = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0


@dataclass
class AccountAnalytics:
    """Channel or profile level numbers; daily and top_videos stay empty when the provider has no report."""
    provider: str
    account_id: str
    followers: int = 0
    following: int = 0
    total_views: int = 0
    total_likes: int = 0
    video_count: int = 0
    daily: List[DailyMetrics] = field(default_factory=list)
    top_videos: List[TopVideo] = field(default_factory=list)
    data_source: str = "basic"
    fetched_at: str = None

    def to_dict(self) -> Dict:
        return asdict(self)


def normalize_account(provider: str, account_id: str, raw: Dict) -> AccountAnalytics:
    daily = [DailyMetrics(
        date=str(row.get("date")),
        views=_int(row.get("views")),
        watch_minutes=_float(row.get("watch_minutes")),
        followers_gained=_int(row.get("followers_gained")),
        followers_lost=_int(row.get("followers_lost")),
    ) for row in raw.get("daily") or [] if row.get("date")]
    top_videos = [TopVideo(
        id=str(row.get("id")),
        title=row.get("title"),
        views=_int(row.get("views")),
        likes=_int(row.get("likes")),
        comments=_int(row.get("comments")),
        shares=_int(row.get("shares")),
    ) for row in raw.get("top_videos") or [] if row.get("id")]
    return AccountAnalytics(
        provider=provider,
        account_id=account_id,
        followers=_int(raw.get("followers")),
        following=_int(raw.get("following")),
        total_views=_int(raw.get("total_views")),
        total_likes=_int(raw.get("total_likes")),
        video_count=_int(raw.get("video_count")),
        daily=daily,
        top_videos=top_videos,
        data_source="real_api" if "daily" in raw or "top_videos" in raw else "basic",
        fetched_at=utcnow().isoformat(),
    )


class AnalyticsService:

    def __init__(self, settings, store, token_manager, publishers):
        self.settings = settings
        self.store = store
        self.token_manager = token_manager
        self.publishers = publishers

    def _account_for(self, owner_id, provider_id, account_id=None) -> SocialAccount:
        if account_id:
            # A share's post belongs to the account that published it, never a sibling account
            account = self.store.first(SocialAccount, {
                "id": account_id, "user_id": owner_id, "status": AccountStatus.ACTIVE})
        else:
            account = self.store.first(
                SocialAccount,
                {"user_id": owner_id, "provider": provider_id, "status": AccountStatus.ACTIVE},
                order_by="updated_at", descending=True,
            )
        if account is None:
            raise AccountNotFound()
        return account

    def fetch_analytics(self, owner_id: str, share_id: str = None, provider_id: str = None,
                        post_id: str = None) -> NormalizedAnalytics:
        """
        Keyed by share id (ownership-checked, result persisted onto the share) or by
        provider + provider post id (result only returned).
        """
        share = None
        if share_id:
            share = self.store.first(SocialShare, {"id": share_id, "user_id": owner_id})
            if not share:
                raise NotFoundOrDenied("Share not found")
            if share.status != ShareStatus.PUBLISHED or not share.provider_post_id:
                raise InvalidRequest("This share has not been published yet")
            provider_id, post_id = share.provider, share.provider_post_id
        elif not (provider_id and post_id):
            raise InvalidRequest("Either share_id or provider and post_id are required")

        provider = capabilities.require_capability(provider_id, Capability.ANALYTICS)
        publisher = self.publishers.get(provider.id)
        if publisher is None:
            raise CapabilityNotSupported(f"{provider.name} analytics are not supported yet")

        account = self._account_for(owner_id, provider.id.value, share.social_account_id if share else None)
        account = self.token_manager.ensure_fresh(account)

        basic = publisher.fetch_statistics(account, account.access_token, post_id)

        rich = {}
        try:
            rich = publisher.fetch_rich_analytics(
                account, account.access_token, post_id, since=share.published_at if share else None) or {}
        except CapabilityNotSupported:
            pass
        except (ReactShareError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"[Analytics] Detailed analytics unavailable for {provider.name} post {post_id}: {e}")
            rich = {}

        result = normalize(provider.id.value, post_id, basic, rich)

        if share is not None:
            now = utcnow()
            self.store.update(SocialShare, {"id": share.id}, {"analytics": result.to_dict(), "last_analytics_sync": now})
            self.store.update(SocialAccount, {"id": account.id}, {"last_sync_at": now})
        return result

    def fetch_account_analytics(self, owner_id: str, provider_id: str, account_id: str = None,
                                since=None) -> AccountAnalytics:
        """Channel or profile level analytics for one connected account; the result is not stored."""
        if not provider_id:
            raise InvalidRequest("provider is required")
        provider = capabilities.require_capability(provider_id, Capability.ANALYTICS)
        publisher = self.publishers.get(provider.id)
        if publisher is None:
            raise CapabilityNotSupported(f"{provider.name} analytics are not supported yet")

        account = self._account_for(owner_id, provider.id.value, account_id)
        if account.provider != provider.id.value:
            raise AccountNotFound()
        account = self.token_manager.ensure_fresh(account)

        raw = publisher.fetch_account_analytics(account, account.access_token, since=since)
        result = normalize_account(provider.id.value, account.id, raw)
        self.store.update(SocialAccount, {"id": account.id}, {"last_sync_at": utcnow()})
        logger.info(f"[Analytics] Account analytics fetched for {provider.name} account {account.id} "
                    f"({result.data_source})")
        return result

    def sync_published_analytics(self) -> int:
        """Periodic job: refreshes the analytics of every published share."""
        synced = 0
        for share in self.store.select(SocialShare, {"status": ShareStatus.PUBLISHED}):
            provider = registry.lookup(share.provider)
            if not provider or not provider.supports(Capability.ANALYTICS) or provider.id not in self.publishers:
                continue
            try:
                self.fetch_analytics(share.user_id, share_id=share.id)
                synced += 1
            except ReactShareError as e:
                logger.warning(f"[Analytics] Sync skipped for share {share.id}: {e.message}")
        logger.info(f"[Analytics] Synced analytics for {synced} shares")
        return synced
