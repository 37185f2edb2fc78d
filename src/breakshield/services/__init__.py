"""Services package initialization."""
from .engine import RestrictionEngine, ProcessShieldEngine, run_enforcement
from .scheduler import ScheduleAdapter
from .lifecycle import LifecycleService, Phase, Decision
from .shield import ShieldProvider, ShieldTarget, ShieldConfiguration
from .foreground import ForegroundTracker
from .monitor import BackgroundMonitor
from .poller import ForegroundPoller

__all__ = [
    'RestrictionEngine',
    'ProcessShieldEngine',
    'run_enforcement',
    'ScheduleAdapter',
    'LifecycleService',
    'Phase',
    'Decision',
    'ShieldProvider',
    'ShieldTarget',
    'ShieldConfiguration',
    'ForegroundTracker',
    'BackgroundMonitor',
    'ForegroundPoller',
]
