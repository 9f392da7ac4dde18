# services/publisher_manager.py
import logging
from datetime import timedelta

from database.models import SocialAccount, AccountStatus, Reaction, ReactionStatus, SocialShare, ShareStatus
from publishers import registry
from publishers.base import PublishRequest
from publishers.registry import Capability
from services import capabilities
from services.errors import (
    ReactShareError, AccountNotFound, NotFoundOrDenied, MediaNotReady, InvalidRequest,
    CapabilityNotSupported, PublishInProgress, UpstreamProviderError,
)
from services.utils import utcnow, as_utc, get_smart_title

logger = logging.getLogger("Publisher-Manager")

# A schedule time this close to "now" is treated as "publish immediately"
IMMEDIATE_WINDOW = timedelta(seconds=60)
# Meta fetches pulled uploads asynchronously, so their links must outlive processing
PULL_URL_TTL_SECONDS = 3600
METADATA_KEYS = ("title", "description", "privacy", "tags", "playlist_id")


def _clean_metadata(metadata) -> dict:
    metadata = dict(metadata or {})
    cleaned = {k: metadata[k] for k in METADATA_KEYS if metadata.get(k) not in (None, "", [])}
    if not cleaned.get("title"):
        cleaned["title"] = get_smart_title(cleaned.get("description", ""))
    cleaned.setdefault("privacy", "private")
    return cleaned


class PublishingOrchestrator:
    """
    Publishes reactions to social providers and records each attempt as a SocialShare.

    Share lifecycle: pending -> published | failed, or scheduled -> pending -> ...
    A share is never left in pending once its attempt has finished.
    """

    def __init__(self, settings, store, blob_store, token_manager, publishers, scratch):
        self.settings = settings
        self.store = store
        self.blob_store = blob_store
        self.token_manager = token_manager
        self.publishers = publishers
        self.scratch = scratch

    # --- Resolution helpers ---

    def resolve_account(self, owner_id: str, provider_id: str, account_id: str = None) -> SocialAccount:
        filters = {"user_id": owner_id, "provider": provider_id, "status": AccountStatus.ACTIVE}
        if account_id:
            filters["id"] = account_id
        accounts = self.store.select(SocialAccount, filters, order_by="updated_at", descending=True)
        if not accounts:
            raise AccountNotFound()
        if len(accounts) > 1 and not self.settings.allow_multiple_accounts_per_provider:
            logger.error(f"[Manager] User {owner_id} has {len(accounts)} active {provider_id} accounts")
            raise InvalidRequest(f"More than one active {provider_id} account is connected; disconnect the extras")
        return accounts[0]

    def _publisher_for(self, provider):
        publisher = self.publishers.get(provider.id)
        if publisher is None:
            raise CapabilityNotSupported(f"Publishing to {provider.name} is not supported yet")
        return publisher

    def _ready_reaction(self, reaction_id: str, owner_id: str) -> Reaction:
        reaction = self.store.first(Reaction, {"id": reaction_id, "user_id": owner_id})
        if not reaction:
            raise NotFoundOrDenied("Reaction not found")
        if not reaction.reaction_video_storage_path:
            raise MediaNotReady()
        return reaction

    def _check_duplicate(self, reaction_id, provider_id, owner_id):
        if not self.settings.deduplicate_publishes:
            return
        in_flight = self.store.first(SocialShare, {
            "user_id": owner_id, "reaction_id": reaction_id, "provider": provider_id,
            "status": ShareStatus.PENDING,
        })
        if in_flight:
            raise PublishInProgress()

    # --- Publishing ---

    def publish(self, reaction_id: str, provider_id: str, owner_id: str, metadata: dict = None,
                account_id: str = None) -> SocialShare:
        """
        Runs one publish attempt. Returns the share in its terminal status: published,
        or failed with the error in its metadata. Problems found before the share row
        exists (no account, media not ready, unsupported provider) raise instead.
        """
        provider = registry.require(provider_id)
        capabilities.require_capability(provider.id, Capability.UPLOAD)
        publisher = self._publisher_for(provider)

        account = self.resolve_account(owner_id, provider.id.value, account_id)
        reaction = self._ready_reaction(reaction_id, owner_id)
        self._check_duplicate(reaction_id, provider.id.value, owner_id)

        share = self.store.insert(SocialShare, {
            "user_id": owner_id,
            "reaction_id": reaction.id,
            "provider": provider.id.value,
            "social_account_id": account.id,
            "status": ShareStatus.PENDING,
            "metadata_": _clean_metadata(metadata),
        })
        logger.info(f"[Manager] Share {share.id} pending: reaction {reaction.id} -> {provider.name}")
        return self._execute(share, account, reaction, publisher)

    def _execute(self, share, account, reaction, publisher) -> SocialShare:
        metadata = dict(share.metadata_ or {})

        try:
            account = self.token_manager.ensure_fresh(account)
        except ReactShareError as e:
            logger.error(f"[Manager] Token refresh failed for share {share.id}, upload skipped")
            return self._fail(share, metadata, e)

        try:
            request = PublishRequest(
                title=metadata.get("title") or "Untitled Reaction",
                description=metadata.get("description", ""),
                privacy=metadata.get("privacy", "private"),
                tags=list(metadata.get("tags") or []),
                playlist_id=metadata.get("playlist_id") if publisher.provider.supports(Capability.PLAYLISTS) else None,
            )
            bucket = self.settings.reaction_video_bucket
            if publisher.pulls_from_url:
                request.video_url = self.blob_store.get_signed_url(
                    bucket, reaction.reaction_video_storage_path,
                    max(self.settings.signed_url_ttl_seconds, PULL_URL_TTL_SECONDS))
                result = publisher.publish(account, account.access_token, request)
            else:
                with self.scratch.scratch_file(prefix=f"share_{share.id}") as local_path:
                    self.blob_store.download_to_file(bucket, reaction.reaction_video_storage_path, local_path)
                    request.video_path = local_path
                    result = publisher.publish(account, account.access_token, request)
        except ReactShareError as e:
            return self._fail(share, metadata, e)
        except Exception as e:
            self._fail(share, metadata, e)
            raise

        metadata.update(result.extra)
        updated = self.store.update(SocialShare, {"id": share.id}, {
            "status": ShareStatus.PUBLISHED,
            "provider_post_id": result.post_id,
            "provider_post_url": result.post_url,
            "published_at": utcnow(),
            "metadata_": metadata,
        })
        self.store.update(Reaction, {"id": reaction.id}, {"status": ReactionStatus.PUBLISHED})
        logger.info(f"[Manager] Share {share.id} published as {result.post_id}")
        return updated[0]

    def _fail(self, share, metadata, error) -> SocialShare:
        metadata = dict(metadata)
        if isinstance(error, ReactShareError):
            metadata["error"] = error.message
        else:
            metadata["error"] = "Internal error during publishing"
        if isinstance(error, UpstreamProviderError) and error.raw_body is not None:
            metadata["error_detail"] = error.raw_body
        metadata["failed_at"] = utcnow().isoformat()
        updated = self.store.update(SocialShare, {"id": share.id}, {"status": ShareStatus.FAILED, "metadata_": metadata})
        logger.error(f"[Manager] Share {share.id} failed: {metadata['error']}")
        return updated[0] if updated else share

    # --- Scheduling ---

    def schedule(self, reaction_id: str, provider_id: str, owner_id: str, metadata: dict,
                 scheduled_for, account_id: str = None) -> SocialShare:
        provider = registry.require(provider_id)
        capabilities.require_capability(provider.id, Capability.SCHEDULING)
        self._publisher_for(provider)

        now = utcnow()
        scheduled_for = as_utc(scheduled_for)
        if scheduled_for is None:
            raise InvalidRequest("scheduled_for is required")
        if scheduled_for <= now:
            if now - scheduled_for > IMMEDIATE_WINDOW:
                raise InvalidRequest("Scheduled time is in the past")
            return self.publish(reaction_id, provider_id, owner_id, metadata, account_id)

        account = self.resolve_account(owner_id, provider.id.value, account_id)
        reaction = self._ready_reaction(reaction_id, owner_id)
        share = self.store.insert(SocialShare, {
            "user_id": owner_id,
            "reaction_id": reaction.id,
            "provider": provider.id.value,
            "social_account_id": account.id,
            "status": ShareStatus.SCHEDULED,
            "scheduled_for": scheduled_for,
            "metadata_": _clean_metadata(metadata),
        })
        logger.info(f"[Manager] Share {share.id} scheduled for {scheduled_for.isoformat()}")
        return share

    def cancel_scheduled(self, share_id: str, owner_id: str):
        share = self.store.first(SocialShare, {"id": share_id, "user_id": owner_id})
        if not share:
            raise NotFoundOrDenied("Share not found")
        if share.status != ShareStatus.SCHEDULED:
            raise InvalidRequest("Only scheduled shares can be cancelled")
        self.store.delete(SocialShare, {"id": share_id, "user_id": owner_id, "status": ShareStatus.SCHEDULED})
        logger.info(f"[Manager] Scheduled share {share_id} cancelled")

    def publish_due_shares(self, now=None) -> int:
        """Periodic job: publishes every scheduled share whose time has come."""
        now = now or utcnow()
        due = [s for s in self.store.select(SocialShare, {"status": ShareStatus.SCHEDULED}, order_by="scheduled_for")
               if s.scheduled_for and as_utc(s.scheduled_for) <= now]
        processed = 0
        for share in due:
            # Claim it; a share another worker already moved is skipped
            claimed = self.store.update(SocialShare, {"id": share.id, "status": ShareStatus.SCHEDULED},
                                        {"status": ShareStatus.PENDING})
            if not claimed:
                continue
            share = claimed[0]
            logger.info(f"[Manager] Processing scheduled share {share.id}")
            try:
                self._run_claimed(share)
            except Exception as e:
                logger.error(f"[Manager] Critical error in scheduled share {share.id}: {e}")
            processed += 1
        return processed

    def _run_claimed(self, share):
        metadata = dict(share.metadata_ or {})
        try:
            provider = registry.require(share.provider)
            publisher = self._publisher_for(provider)
            account = None
            if share.social_account_id:
                account = self.store.first(SocialAccount, {
                    "id": share.social_account_id, "user_id": share.user_id, "status": AccountStatus.ACTIVE})
            account = account or self.resolve_account(share.user_id, share.provider)
            reaction = self._ready_reaction(share.reaction_id, share.user_id)
        except ReactShareError as e:
            return self._fail(share, metadata, e)
        return self._execute(share, account, reaction, publisher)

    # --- Queries ---

    def list_shares(self, owner_id: str, provider: str = None, reaction_id: str = None, status: str = None):
        filters = {"user_id": owner_id}
        if provider:
            filters["provider"] = provider
        if reaction_id:
            filters["reaction_id"] = reaction_id
        if status:
            try:
                filters["status"] = ShareStatus(status)
            except ValueError:
                raise InvalidRequest(f"Unknown share status '{status}'")
        return self.store.select(SocialShare, filters, order_by="created_at", descending=True)
