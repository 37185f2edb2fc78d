"""Foreground poller driving the controller's countdown."""
import logging
import threading
from typing import Callable, Optional

from .lifecycle import Decision, Phase

logger = logging.getLogger(__name__)


class ForegroundPoller:
    """Tick the lifecycle once per interval while the controller is visible."""

    def __init__(self, service, on_tick: Optional[Callable[[Decision], None]] = None,
                 on_break_complete: Optional[Callable[[Decision], None]] = None,
                 interval: float = 1.0):
        self.service = service
        self.on_tick = on_tick
        self.on_break_complete = on_break_complete
        self.interval = interval
        self.last_decision: Optional[Decision] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> Optional[Decision]:
        """Run one lifecycle step and publish it to the callbacks."""
        try:
            decision = self.service.update_phase()
        except Exception:
            logger.exception("Error in poller tick")
            return None

        self.last_decision = decision
        if self.on_tick:
            try:
                self.on_tick(decision)
            except Exception as e:
                logger.error("Tick callback error: %s", e)
        if decision.transition and decision.phase is Phase.BREAK_COMPLETE and self.on_break_complete:
            try:
                self.on_break_complete(decision)
            except Exception as e:
                logger.error("Break-complete callback error: %s", e)
        return decision

    def _loop(self):
        while not self._stop.wait(self.interval):
            self.tick()

    def resume(self) -> Optional[Decision]:
        """Controller became visible: catch up immediately, then keep ticking."""
        self.pause()
        try:
            self.service.resync()
        except Exception:
            logger.exception("Error consuming restart events")
        decision = self.tick()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name="foreground-poller", daemon=True)
        self._thread.start()
        logger.info("▶️ Foreground poller running")
        return decision

    def pause(self):
        """Controller hidden: stop ticking."""
        if self._thread is None:
            return
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval * 2)
        self._thread = None
        logger.info("⏸️ Foreground poller paused")
