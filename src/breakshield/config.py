"""Runtime configuration for BreakShield."""
import logging
import os
from pathlib import Path

# Cool-down and grace windows
BLOCK_SECONDS = 300
ALLOWANCE_SECONDS = 300
USAGE_THRESHOLD_MINUTES = 5

# Schedule names shared by the controller and the monitor
PROTECTION_ACTIVITY = "protection"
DELAYED_BLOCK_ACTIVITY = "delayed_block"
THRESHOLD_EVENT = "threshold_reached"
ALL_ACTIVITIES = [PROTECTION_ACTIVITY, DELAYED_BLOCK_ACTIVITY]

# Files
DATA_DIR = Path(os.getenv("BREAKSHIELD_DATA_DIR", "data"))
DATABASE_URL = os.getenv("BREAKSHIELD_DATABASE_URL", f"sqlite:///{DATA_DIR / 'breakshield.db'}")

# API
API_HOST = os.getenv("BREAKSHIELD_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("BREAKSHIELD_API_PORT", "8765"))

# Monitor process
ENFORCEMENT_INTERVAL = 1
JOBSTORE_POLL_SECONDS = 5

LOG_LEVEL = os.getenv("BREAKSHIELD_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(process)d] %(name)s %(levelname)s: %(message)s"


def get_engine_kwargs(url: str = None) -> dict:
    """SQLAlchemy engine configuration."""
    url = url or DATABASE_URL
    kwargs = {'echo': os.getenv('SQL_DEBUG', 'false').lower() == 'true'}
    if url.startswith('sqlite'):
        kwargs['connect_args'] = {
            'check_same_thread': False,
            'timeout': 20,
        }
    return kwargs


def configure_logging(level: str = None):
    """Configure root logging once per process."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
