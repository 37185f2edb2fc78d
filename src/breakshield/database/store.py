"""Process-shared key/value store.

The controller, the background monitor and the shield provider run in
different processes and only ever talk through this store. Every public
call opens its own short-lived session, so a value committed by another
process is visible on the very next read. Writes are atomic per key;
``set_many`` groups several keys into one SQLite transaction.
"""
import enum
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert

from ..exceptions import SelectionDecodeError
from ..selection import Selection
from .models import RestartEvent, StateEntry, init_database

logger = logging.getLogger(__name__)


class Keys:
    """Fixed key set of the shared namespace."""
    SELECTION = "selectedApp"
    ENABLED = "isProtectionEnabled"
    MODE = "blockMode"
    BLOCK_START = "blockStartTime"
    ALLOWANCE_START = "allowanceStartTime"
    USAGE_MINUTES = "totalMinutesUsed"
    PHASE_LABEL = "delayedBlockPhase"
    SETUP_COMPLETE = "hasCompletedSetup"

    ALL = frozenset([
        SELECTION, ENABLED, MODE, BLOCK_START, ALLOWANCE_START,
        USAGE_MINUTES, PHASE_LABEL, SETUP_COMPLETE,
    ])


class BlockMode(str, enum.Enum):
    INSTANT = "instant"
    DELAYED = "delayed"
    USAGE = "usage"  # cumulative-usage threshold variant of delayed


@dataclass(frozen=True)
class RestrictionConfig:
    selection: Optional[Selection] = None
    mode: BlockMode = BlockMode.INSTANT
    enabled: bool = False

    @property
    def is_active(self) -> bool:
        """Enabled with something to restrict."""
        return self.enabled and self.selection is not None and not self.selection.is_empty


@dataclass(frozen=True)
class RestrictionState:
    block_start_time: float = 0.0
    allowance_start_time: float = 0.0
    cumulative_usage_minutes: int = 0
    phase_label: str = ""

    def evolve(self, **changes) -> "RestrictionState":
        return replace(self, **changes)

    def to_store(self) -> Dict[str, Any]:
        return {
            Keys.BLOCK_START: self.block_start_time,
            Keys.ALLOWANCE_START: self.allowance_start_time,
            Keys.USAGE_MINUTES: self.cumulative_usage_minutes,
            Keys.PHASE_LABEL: self.phase_label,
        }


def _check_key(key: str):
    if key not in Keys.ALL:
        raise KeyError(f"Unknown shared state key: {key}")


class SharedStateStore:
    """Durable key/value map shared by every BreakShield process."""

    def __init__(self, session_factory=None, db_url: str = None):
        self._Session = session_factory or init_database(db_url)

    # --- raw key/value access -------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Read a key; a missing or unreadable key reads as ``default``."""
        _check_key(key)
        with self._Session() as session:
            entry = session.get(StateEntry, key)
            if entry is None or entry.value is None:
                return default
            try:
                return json.loads(entry.value)
            except ValueError:
                logger.warning("⚠️ Corrupt value for %s, using default", key)
                return default

    def set(self, key: str, value: Any):
        self.set_many({key: value})

    def set_many(self, values: Dict[str, Any]):
        """Write several keys in one transaction."""
        for key in values:
            _check_key(key)
        with self._Session() as session:
            for key, value in values.items():
                stmt = insert(StateEntry).values(key=key, value=json.dumps(value))
                stmt = stmt.on_conflict_do_update(
                    index_elements=[StateEntry.key],
                    set_={'value': stmt.excluded.value},
                )
                session.execute(stmt)
            session.commit()

    def delete(self, key: str):
        _check_key(key)
        with self._Session() as session:
            entry = session.get(StateEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()

    # --- typed access ---------------------------------------------------

    def load_selection(self) -> Optional[Selection]:
        blob = self.get(Keys.SELECTION)
        if blob is None:
            return None
        try:
            return Selection.decode(blob)
        except SelectionDecodeError as e:
            logger.error("✗ Failed to decode selectedApp, treating as absent: %s", e)
            return None

    def load_config(self) -> RestrictionConfig:
        raw_mode = self.get(Keys.MODE, BlockMode.INSTANT.value)
        try:
            mode = BlockMode(raw_mode)
        except ValueError:
            logger.warning("⚠️ Unknown blockMode %r, falling back to instant", raw_mode)
            mode = BlockMode.INSTANT
        return RestrictionConfig(
            selection=self.load_selection(),
            mode=mode,
            enabled=bool(self.get(Keys.ENABLED, False)),
        )

    def save_config(self, config: RestrictionConfig):
        values = {
            Keys.MODE: config.mode.value,
            Keys.ENABLED: config.enabled,
        }
        if config.selection is not None:
            values[Keys.SELECTION] = config.selection.to_dict()
        self.set_many(values)

    def load_state(self) -> RestrictionState:
        return RestrictionState(
            block_start_time=float(self.get(Keys.BLOCK_START) or 0),
            allowance_start_time=float(self.get(Keys.ALLOWANCE_START) or 0),
            cumulative_usage_minutes=int(self.get(Keys.USAGE_MINUTES) or 0),
            phase_label=self.get(Keys.PHASE_LABEL) or "",
        )

    def save_state(self, state: RestrictionState, extra: Dict[str, Any] = None):
        """Persist every state field, plus any ``extra`` keys, in one transaction."""
        self.set_many({**state.to_store(), **(extra or {})})

    # --- restart events -------------------------------------------------

    def publish_restart(self, reason: str):
        """Record that a background process changed state behind the controller."""
        with self._Session() as session:
            session.add(RestartEvent(reason=reason))
            session.commit()
        logger.info("📨 Restart event published: %s", reason)

    def consume_restart_events(self) -> List[str]:
        """Claim every pending restart event; each one is returned to one caller only.

        Claimed rows are deleted, so the table only holds unconsumed events.
        """
        claimed = []
        with self._Session() as session:
            pending = session.query(RestartEvent.id, RestartEvent.reason).order_by(RestartEvent.id).all()
            for event_id, reason in pending:
                result = session.execute(
                    delete(RestartEvent).where(RestartEvent.id == event_id)
                )
                if result.rowcount == 1:
                    claimed.append(reason)
            session.commit()
        return claimed
