"""Schedule adapter: named intervals that fire monitor callbacks."""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import DATABASE_URL

logger = logging.getLogger(__name__)

# Callbacks are referenced textually so whichever process runs the
# scheduler executes them against its own store.
INTERVAL_START_FUNC = 'breakshield.services.monitor:on_interval_start'
INTERVAL_END_FUNC = 'breakshield.services.monitor:on_interval_end'
USAGE_TICK_FUNC = 'breakshield.services.monitor:on_usage_tick'

JOB_SUFFIXES = ('start', 'end', 'usage')


def job_id(name: str, suffix: str) -> str:
    return f"{name}:{suffix}"


def create_jobstore(db_url: str = None) -> SQLAlchemyJobStore:
    """Job store shared by the controller and the monitor process."""
    return SQLAlchemyJobStore(url=db_url or DATABASE_URL, tablename='scheduled_jobs')


class ScheduleAdapter:
    """Arm and cancel named intervals.

    The controller starts its scheduler paused: it only writes jobs into
    the shared job store, and the monitor process runs them. The monitor
    passes ``autostart=False`` and starts its blocking scheduler itself.
    """

    def __init__(self, scheduler=None, db_url: str = None, paused: bool = True,
                 autostart: bool = True):
        if scheduler is None:
            scheduler = BackgroundScheduler(jobstores={'default': create_jobstore(db_url)})
        self.scheduler = scheduler
        if autostart and not self.scheduler.running:
            self.scheduler.start(paused=paused)

    def arm(self, name: str, start_at: datetime, end_at: datetime,
            recurring: bool = False, threshold: Optional[timedelta] = None):
        """
        Arm a named interval.

        Args:
            name: Activity name, e.g. ``protection``
            start_at: When the interval starts
            end_at: When the interval ends
            recurring: Repeat daily at the same wall-clock times
            threshold: Usage amount after which the threshold event fires
        """
        if recurring:
            start_trigger = CronTrigger(hour=start_at.hour, minute=start_at.minute, second=start_at.second)
            end_trigger = CronTrigger(hour=end_at.hour, minute=end_at.minute, second=end_at.second)
        else:
            start_trigger = DateTrigger(run_date=start_at)
            end_trigger = DateTrigger(run_date=end_at)

        self.scheduler.add_job(
            func=INTERVAL_START_FUNC,
            trigger=start_trigger,
            args=[name],
            id=job_id(name, 'start'),
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
        self.scheduler.add_job(
            func=INTERVAL_END_FUNC,
            trigger=end_trigger,
            args=[name],
            id=job_id(name, 'end'),
            replace_existing=True,
            coalesce=True,
        )
        if threshold is not None:
            self.scheduler.add_job(
                func=USAGE_TICK_FUNC,
                trigger=IntervalTrigger(seconds=threshold.total_seconds()),
                args=[name],
                id=job_id(name, 'usage'),
                replace_existing=True,
                coalesce=True,
            )

        logger.info("📅 Armed %s (%s - %s, recurring=%s, threshold=%s)",
                    name, start_at, end_at, recurring, threshold)

    def cancel(self, names: Iterable[str]):
        """Remove every job of the given intervals; unknown names are ignored."""
        for name in names:
            for suffix in JOB_SUFFIXES:
                try:
                    self.scheduler.remove_job(job_id(name, suffix))
                except JobLookupError:
                    pass
            logger.info("🗑️ Cancelled schedule %s", name)

    def is_armed(self, name: str) -> bool:
        return any(
            self.scheduler.get_job(job_id(name, suffix)) is not None
            for suffix in JOB_SUFFIXES
        )

    def shutdown(self):
        """Shutdown the scheduler."""
        self.scheduler.shutdown(wait=False)
