"""Background monitor: callbacks fired by the schedule adapter.

Runs in its own process with no UI. Every handler re-reads the shared
store, runs to completion and only communicates back to the controller
through store writes and restart events.
"""
import logging
import threading

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.blocking import BlockingScheduler

from ..config import (
    DELAYED_BLOCK_ACTIVITY,
    ENFORCEMENT_INTERVAL,
    JOBSTORE_POLL_SECONDS,
    PROTECTION_ACTIVITY,
    THRESHOLD_EVENT,
    configure_logging,
)
from .foreground import ForegroundTracker

logger = logging.getLogger(__name__)


class BackgroundMonitor:
    """Schedule callbacks for the protection activities."""

    def __init__(self, service, tracker: ForegroundTracker = None):
        self.service = service
        self.tracker = tracker or ForegroundTracker()

    def interval_did_start(self, name: str):
        logger.info("[MONITOR] intervalDidStart: %s", name)
        if name != DELAYED_BLOCK_ACTIVITY:
            return None
        decision = self.service.start_delayed_block()
        if decision.transition:
            logger.info("[MONITOR] ✓ Delayed block applied")
        else:
            logger.info("[MONITOR] Delayed block skipped (phase=%s)", decision.phase.value)
        return decision

    def interval_did_end(self, name: str):
        logger.info("[MONITOR] Interval ended: %s", name)

    def event_did_reach_threshold(self, event: str, name: str):
        logger.info("[MONITOR] eventDidReachThreshold: %s / %s", event, name)
        if name != PROTECTION_ACTIVITY or event != THRESHOLD_EVENT:
            logger.info("[MONITOR] Not the protection threshold event, ignoring")
            return None
        decision = self.service.register_usage_minute()
        if decision.transition:
            logger.info("[MONITOR] ✓ Usage threshold reached, shield applied")
        else:
            logger.info("[MONITOR] Usage counted (phase=%s, remaining=%ss)",
                        decision.phase.value, decision.remaining)
        return decision

    def selection_in_use(self) -> bool:
        """Whether a selected application is the foreground app right now."""
        selection = self.service.store.load_selection()
        if selection is None or not selection.applications:
            return False
        active = self.tracker.active_app()
        if not active:
            return False
        active = active.lower()
        return any(app.lower() in active for app in selection.applications)

    def usage_tick(self, name: str):
        """One usage interval elapsed; count it when the selection was in the foreground."""
        if not self.selection_in_use():
            return None
        return self.event_did_reach_threshold(THRESHOLD_EVENT, name)


# Process-wide monitor used by the textual job references
_monitor = None


def set_monitor(monitor: BackgroundMonitor):
    """Set the monitor instance job callbacks are routed to."""
    global _monitor
    _monitor = monitor


def _require_monitor() -> BackgroundMonitor:
    if _monitor is None:
        raise RuntimeError("Background monitor not initialised in this process")
    return _monitor


def on_interval_start(name: str):
    _require_monitor().interval_did_start(name)


def on_interval_end(name: str):
    _require_monitor().interval_did_end(name)


def on_usage_tick(name: str):
    _require_monitor().usage_tick(name)


def _poll_jobstore():
    # Waking up makes the scheduler re-read jobs armed by the controller.
    pass


def announce_shield(app_name: str, pid: int, shield):
    """Warning callback: report the shield shown for a terminated app."""
    if shield is None:
        logger.warning("⚠️ %s (pid=%s) blocked", app_name, pid)
        return
    logger.warning("⚠️ %s (pid=%s): %s | %s", app_name, pid, shield.title,
                   shield.subtitle.splitlines()[0])


def main():
    """Run the background monitor process."""
    from ..database import SharedStateStore, init_database
    from ..main import ensure_data_directory
    from .engine import ProcessShieldEngine, run_enforcement
    from .lifecycle import LifecycleService
    from .scheduler import ScheduleAdapter, create_jobstore
    from .shield import ShieldProvider

    configure_logging()
    print("🚀 Starting BreakShield monitor...")
    ensure_data_directory()
    session_factory = init_database()

    scheduler = BlockingScheduler(jobstores={
        'default': create_jobstore(),
        'local': MemoryJobStore(),
    })
    schedules = ScheduleAdapter(scheduler=scheduler, autostart=False)
    store = SharedStateStore(session_factory)
    engine = ProcessShieldEngine(session_factory)
    service = LifecycleService(store, engine, schedules)
    engine.set_shield_provider(ShieldProvider(service))
    engine.set_warning_callback(announce_shield)
    set_monitor(BackgroundMonitor(service))

    stop_event = threading.Event()
    threading.Thread(
        target=run_enforcement, args=(engine, ENFORCEMENT_INTERVAL, stop_event), daemon=True
    ).start()
    print("✅ Enforcement loop started")

    scheduler.add_job(_poll_jobstore, 'interval', seconds=JOBSTORE_POLL_SECONDS,
                      id='poll_jobstore', jobstore='local', replace_existing=True)
    print("✅ Monitor scheduler running")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        print("\n👋 Shutting down monitor...")
    finally:
        stop_event.set()


if __name__ == "__main__":
    main()
