# services/container.py
import logging
from dataclasses import dataclass

from database.record_store import RecordStore
from database.session import build_engine, build_session_factory, init_db
from publishers import registry
from publishers.registry import ProviderId
from publishers.facebook import FacebookPublisher
from publishers.instagram import InstagramPublisher
from publishers.tiktok import TikTokPublisher
from publishers.youtube import YouTubePublisher
from services.accounts import AccountService
from services.acquisition import AcquisitionService
from services.analytics import AnalyticsService
from services.downloader import YtDlpDownloader
from services.library import LibraryService
from services.playlists import PlaylistService
from services.publisher_manager import PublishingOrchestrator
from services.reactions import ReactionService
from services.scheduler import TaskRunner
from services.token_manager import TokenManager
from storage.local_temp import ScratchSpace
from storage.oracle_s3 import OracleBlobStore

logger = logging.getLogger("Container")


def build_publishers(timeout: int):
    # Twitter is catalogued but has no upload client
    return {
        ProviderId.YOUTUBE: YouTubePublisher(registry.YOUTUBE, timeout),
        ProviderId.TIKTOK: TikTokPublisher(registry.TIKTOK, timeout),
        ProviderId.INSTAGRAM: InstagramPublisher(registry.INSTAGRAM, timeout),
        ProviderId.FACEBOOK: FacebookPublisher(registry.FACEBOOK, timeout),
    }


@dataclass
class Services:
    settings: object
    store: RecordStore
    blob_store: object
    tasks: TaskRunner
    tokens: TokenManager
    accounts: AccountService
    acquisition: AcquisitionService
    reactions: ReactionService
    library: LibraryService
    publishing: PublishingOrchestrator
    analytics: AnalyticsService
    playlists: PlaylistService

    def start(self):
        self.tasks.add_interval(self.publishing.publish_due_shares, self.settings.scheduler_interval_seconds,
                                job_id="publish-due-shares")
        if self.settings.analytics_sync_interval_minutes > 0:
            self.tasks.add_interval(self.analytics.sync_published_analytics,
                                    self.settings.analytics_sync_interval_minutes * 60,
                                    job_id="sync-published-analytics")
        self.tasks.start()

    def shutdown(self):
        self.tasks.shutdown(wait=True)


def build_services(settings, session_factory=None, blob_store=None, downloader=None, tasks=None,
                   publishers=None, create_tables=True) -> Services:
    """Wires every component from Settings. Tests pass in-memory collaborators."""
    if session_factory is None:
        engine = build_engine(settings.database_url)
        if create_tables:
            init_db(engine)
            logger.info("[Database] Tables verified successfully.")
        session_factory = build_session_factory(engine)

    store = RecordStore(session_factory)
    blob_store = blob_store or OracleBlobStore(settings)
    downloader = downloader or YtDlpDownloader(
        settings.ytdlp_binary, settings.download_max_filesize, settings.download_timeout_seconds)
    tasks = tasks or TaskRunner()
    publishers = publishers if publishers is not None else build_publishers(settings.http_timeout_seconds)
    scratch = ScratchSpace(settings.scratch_dir)
    tokens = TokenManager(settings, store)

    return Services(
        settings=settings,
        store=store,
        blob_store=blob_store,
        tasks=tasks,
        tokens=tokens,
        accounts=AccountService(store, tokens),
        acquisition=AcquisitionService(settings, store, blob_store, downloader, scratch, tasks),
        reactions=ReactionService(settings, store, blob_store),
        library=LibraryService(settings, store, blob_store),
        publishing=PublishingOrchestrator(settings, store, blob_store, tokens, publishers, scratch),
        analytics=AnalyticsService(settings, store, tokens, publishers),
        playlists=PlaylistService(store, tokens, publishers),
    )
