"""Restriction engine adapters."""
import logging
import platform
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Set

import psutil

from ..database.models import ShieldEntry
from ..selection import Selection
from .foreground import SUPPORTED_PLATFORMS

logger = logging.getLogger(__name__)

APPLICATION = 'application'
APPLICATION_CATEGORY = 'application_category'
WEB_DOMAIN_CATEGORY = 'web_domain_category'
WEB_DOMAIN = 'web_domain'
SHIELD_KINDS = (APPLICATION, APPLICATION_CATEGORY, WEB_DOMAIN_CATEGORY, WEB_DOMAIN)


class RestrictionEngine(ABC):
    """Facade over whatever actually hides the selected targets."""

    @abstractmethod
    def apply(self, selection: Selection):
        """Shield every token in ``selection``. Applying the same selection twice is a no-op."""

    @abstractmethod
    def clear(self):
        """Remove every shield of every kind, whether or not anything was applied."""


class ProcessShieldEngine(RestrictionEngine):
    """Local engine that shields apps by terminating their processes.

    The active shield lives in the ``active_shields`` table so the
    controller, the monitor and the API all see the same shield.
    """

    def __init__(self, session_factory):
        self._Session = session_factory
        self.shield_provider = None
        self.warning_callback: Optional[Callable[[str, int, object], None]] = None
        self.warned_pids: Dict[int, float] = {}  # pid -> last warning timestamp
        self.warning_cooldown = 15
        self.system = platform.system()

    def set_shield_provider(self, provider):
        """Register the provider asked for the shield content before each block."""
        self.shield_provider = provider

    def set_warning_callback(self, callback: Callable[[str, int, object], None]):
        """Register a UI callback receiving (app name, pid, shield configuration)."""
        self.warning_callback = callback

    def apply(self, selection: Selection):
        rows = (
            [(APPLICATION, t) for t in selection.applications]
            + [(APPLICATION_CATEGORY, t) for t in selection.categories]
            + [(WEB_DOMAIN, t) for t in selection.web_domains]
        )
        with self._Session() as session:
            session.query(ShieldEntry).filter(
                ShieldEntry.kind.in_([APPLICATION, APPLICATION_CATEGORY, WEB_DOMAIN])
            ).delete(synchronize_session=False)
            session.add_all(ShieldEntry(kind=kind, token=token) for kind, token in rows)
            session.commit()
        logger.info("🚫 Shield applied to %d target(s)", len(rows))

    def clear(self):
        with self._Session() as session:
            session.query(ShieldEntry).filter(
                ShieldEntry.kind.in_(SHIELD_KINDS)
            ).delete(synchronize_session=False)
            session.commit()
        self.warned_pids.clear()
        logger.info("✅ All shields cleared")

    def shielded(self, kind: str) -> Set[str]:
        """Tokens currently shielded for one kind."""
        with self._Session() as session:
            rows = session.query(ShieldEntry.token).filter_by(kind=kind).all()
        return {token.lower() for (token,) in rows}

    @property
    def supported(self) -> bool:
        """Whether process enforcement works on this platform."""
        return self.system in SUPPORTED_PLATFORMS

    @property
    def active(self) -> bool:
        with self._Session() as session:
            return session.query(ShieldEntry.id).first() is not None

    def is_website_blocked(self, domain: str) -> bool:
        """Check if a website is shielded by pattern match."""
        domain = domain.lower()
        return any(blocked in domain for blocked in self.shielded(WEB_DOMAIN))

    def is_category_blocked(self, category: str) -> bool:
        category = category.lower()
        return (
            category in self.shielded(APPLICATION_CATEGORY)
            or category in self.shielded(WEB_DOMAIN_CATEGORY)
        )

    def _render_shield(self, name: str, pid: int):
        """Ask the provider what the shield shows for this access attempt."""
        from .shield import ShieldTarget

        config = None
        if self.shield_provider is not None:
            config = self.shield_provider.configuration(ShieldTarget.APPLICATION)
        now = time.time()
        if self.warning_callback and now - self.warned_pids.get(pid, 0) > self.warning_cooldown:
            self.warned_pids[pid] = now
            try:
                self.warning_callback(name, pid, config)
            except Exception as e:
                logger.error("Warning callback error: %s", e)
        return config

    def enforce_once(self) -> int:
        """Terminate running processes that match a shielded application."""
        if not self.supported:
            return 0
        blocked_apps = self.shielded(APPLICATION)
        if not blocked_apps:
            return 0

        self.warned_pids = {pid: ts for pid, ts in self.warned_pids.items() if psutil.pid_exists(pid)}
        terminated = 0
        for proc in psutil.process_iter(['pid', 'name']):
            try:
                proc_name = proc.info['name'] or ''
                if not any(blocked in proc_name.lower() for blocked in blocked_apps):
                    continue
                pid = proc.info['pid']
                logger.info("🚨 Shielded app running: %s (pid=%s)", proc_name, pid)
                # The current attempt stays blocked even if rendering just cleared the shield.
                self._render_shield(proc_name, pid)
                psutil.Process(pid).terminate()
                terminated += 1
                logger.info("⚡ Terminated: %s", proc_name)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                pass
        return terminated


def run_enforcement(engine: ProcessShieldEngine, interval: int = 1,
                    stop_event: threading.Event = None):
    """
    Run the enforcement loop until ``stop_event`` is set.

    Args:
        engine: ProcessShieldEngine instance
        interval: Check interval in seconds
        stop_event: Optional event that ends the loop
    """
    stop_event = stop_event or threading.Event()
    if not engine.supported:
        logger.warning("⚠️ Process enforcement unsupported on %s, shields are recorded only",
                       engine.system)
    logger.info("🛡️ Enforcement loop started")
    while not stop_event.is_set():
        try:
            engine.enforce_once()
        except Exception:
            logger.exception("Error in enforcement loop")
        stop_event.wait(interval)
    logger.info("🛑 Enforcement loop stopped")
