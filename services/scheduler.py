# services/scheduler.py
import logging

from apscheduler.schedulers.background import BackgroundScheduler

from services.utils import utcnow, new_id

logger = logging.getLogger("Scheduler")


class TaskRunner:
    """
    Background work on an APScheduler BackgroundScheduler.

    submit() schedules a one-shot job to run now and returns its id, which callers
    store as a correlation id. With eager=True submitted work runs inline (tests).
    """

    def __init__(self, eager: bool = False, max_workers: int = 4):
        self.eager = eager
        self.scheduler = BackgroundScheduler(
            timezone="UTC",
            executors={"default": {"type": "threadpool", "max_workers": max_workers}},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
        )

    def submit(self, func, *args, job_id: str = None, name: str = None, **kwargs) -> str:
        job_id = job_id or new_id()
        if self.eager:
            logger.info(f"[Tasks] Running job {job_id} ({name or func.__name__}) inline")
            func(*args, **kwargs)
            return job_id
        self.scheduler.add_job(
            func, "date", run_date=utcnow(), args=args, kwargs=kwargs,
            id=job_id, name=name or func.__name__, replace_existing=False,
        )
        logger.info(f"[Tasks] Submitted job {job_id} ({name or func.__name__})")
        return job_id

    def add_interval(self, func, seconds: int, job_id: str):
        if self.eager:
            return
        self.scheduler.add_job(func, "interval", seconds=seconds, id=job_id, replace_existing=True)
        logger.info(f"[Tasks] Periodic job '{job_id}' registered every {seconds}s")

    def start(self):
        if self.eager or self.scheduler.running:
            return
        self.scheduler.start()
        logger.info("[Tasks] Background engine started successfully.")

    def shutdown(self, wait: bool = True):
        if self.eager or not self.scheduler.running:
            return
        # wait=True lets in-flight downloads and uploads reach their terminal state
        self.scheduler.shutdown(wait=wait)
        logger.info("[Tasks] Background engine stopped.")
