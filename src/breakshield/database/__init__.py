"""Database package initialization."""
from .models import (
    Base,
    StateEntry,
    RestartEvent,
    ShieldEntry,
    init_database,
)
from .store import (
    SharedStateStore,
    RestrictionConfig,
    RestrictionState,
    BlockMode,
    Keys,
)

__all__ = [
    'Base',
    'StateEntry',
    'RestartEvent',
    'ShieldEntry',
    'init_database',
    'SharedStateStore',
    'RestrictionConfig',
    'RestrictionState',
    'BlockMode',
    'Keys',
]
