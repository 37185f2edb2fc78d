"""Restriction lifecycle.

The transition functions are pure: they take the persisted config and
state plus the current time and return a ``Decision`` holding the phase,
the new state and the side effects to run. ``LifecycleService`` is the
only place that reads the store, persists the new state and executes the
effects. The controller, the background monitor and the shield provider
all drive the same functions, so re-running any of them with the same or
a later ``now`` converges on the same state.
"""
import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..config import (
    ALL_ACTIVITIES,
    ALLOWANCE_SECONDS,
    BLOCK_SECONDS,
    DELAYED_BLOCK_ACTIVITY,
    PROTECTION_ACTIVITY,
    USAGE_THRESHOLD_MINUTES,
)
from ..database.store import BlockMode, Keys, RestrictionConfig, RestrictionState, SharedStateStore
from ..exceptions import ConfigurationError
from ..selection import Selection

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    IDLE = "idle"
    ALLOWANCE = "allowance"
    BLOCKING = "blocking"
    BREAK_COMPLETE = "break_complete"


# --- side effects ---------------------------------------------------------

@dataclass(frozen=True)
class ApplyShield:
    selection: Selection


@dataclass(frozen=True)
class ClearShield:
    pass


@dataclass(frozen=True)
class CancelSchedules:
    names: Tuple[str, ...]


@dataclass(frozen=True)
class ArmSchedule:
    name: str
    start_at: datetime
    end_at: datetime
    recurring: bool = False
    threshold: Optional[timedelta] = None


@dataclass(frozen=True)
class PublishRestart:
    reason: str


@dataclass(frozen=True)
class Decision:
    phase: Phase
    remaining: int
    state: RestrictionState
    effects: Tuple[object, ...] = field(default_factory=tuple)
    transition: Optional[str] = None


def remaining_seconds(start: float, now: float, window: int) -> int:
    """Whole seconds left in ``window``; 0 exactly at ``start + window``."""
    return max(0, min(window, window - int(now - start)))


def _all_day(now: float) -> Tuple[datetime, datetime]:
    day = datetime.fromtimestamp(now)
    return (day.replace(hour=0, minute=0, second=0, microsecond=0),
            day.replace(hour=23, minute=59, second=0, microsecond=0))


def usage_schedule(now: float) -> ArmSchedule:
    """All-day recurring entry whose usage event fires every elapsed minute."""
    start_at, end_at = _all_day(now)
    return ArmSchedule(PROTECTION_ACTIVITY, start_at, end_at, recurring=True,
                       threshold=timedelta(minutes=1))


# --- transitions ----------------------------------------------------------

def current_phase(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    """Report the phase without transitioning."""
    if not config.is_active:
        return Decision(Phase.IDLE, 0, state)
    if state.allowance_start_time > 0 and now - state.allowance_start_time < ALLOWANCE_SECONDS:
        return Decision(Phase.ALLOWANCE,
                        remaining_seconds(state.allowance_start_time, now, ALLOWANCE_SECONDS), state)
    if state.block_start_time > 0 and now - state.block_start_time < BLOCK_SECONDS:
        return Decision(Phase.BLOCKING,
                        remaining_seconds(state.block_start_time, now, BLOCK_SECONDS), state)
    if config.mode is BlockMode.USAGE and state.block_start_time <= 0:
        left = max(0, USAGE_THRESHOLD_MINUTES - state.cumulative_usage_minutes)
        return Decision(Phase.ALLOWANCE, left * 60, state)
    return Decision(Phase.BREAK_COMPLETE, 0, state)


def _end_block(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    effects = [ClearShield(), CancelSchedules(tuple(ALL_ACTIVITIES))]
    if config.mode is BlockMode.USAGE:
        # restart usage counting for the next round
        effects.append(usage_schedule(now))
    new_state = state.evolve(block_start_time=0.0, allowance_start_time=0.0,
                             phase_label=Phase.BREAK_COMPLETE.value)
    return Decision(Phase.BREAK_COMPLETE, 0, new_state, tuple(effects),
                    transition="blocking->break_complete")


def _begin_block(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    # The block starts when the allowance ran out, not when somebody noticed.
    block_start = min(now, state.allowance_start_time + ALLOWANCE_SECONDS)
    new_state = state.evolve(block_start_time=block_start, allowance_start_time=0.0,
                             phase_label="delayed_block")
    if now - block_start >= BLOCK_SECONDS:
        return _end_block(config, new_state, now)
    return Decision(Phase.BLOCKING, remaining_seconds(block_start, now, BLOCK_SECONDS), new_state,
                    (ApplyShield(config.selection),), transition="allowance->blocking")


def update_phase(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    """Single authoritative transition function, safe to call from any process."""
    if not config.is_active:
        return Decision(Phase.IDLE, 0, state)

    if state.allowance_start_time > 0:
        if now - state.allowance_start_time < ALLOWANCE_SECONDS:
            return current_phase(config, state, now)
        if state.block_start_time <= 0:
            return _begin_block(config, state, now)
        # Another process already started the block; drop the stale allowance.
        state = state.evolve(allowance_start_time=0.0)

    if state.block_start_time > 0 and now - state.block_start_time >= BLOCK_SECONDS:
        return _end_block(config, state, now)

    return current_phase(config, state, now)


def start_delayed_block(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    """Interval-start of the one-shot delayed block."""
    if (not config.is_active or config.mode is not BlockMode.DELAYED
            or state.allowance_start_time <= 0 or state.block_start_time > 0):
        return current_phase(config, state, now)
    decision = _begin_block(config, state, now)
    return Decision(decision.phase, decision.remaining, decision.state,
                    decision.effects + (PublishRestart("interval_block_applied"),),
                    decision.transition)


def register_usage_minute(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    """Count one elapsed minute of usage; the fifth one starts the block."""
    if not config.is_active or config.mode is not BlockMode.USAGE or state.block_start_time > 0:
        return current_phase(config, state, now)

    minutes = state.cumulative_usage_minutes + 1
    if minutes < USAGE_THRESHOLD_MINUTES:
        new_state = state.evolve(cumulative_usage_minutes=minutes)
        return Decision(Phase.ALLOWANCE, (USAGE_THRESHOLD_MINUTES - minutes) * 60, new_state)

    new_state = state.evolve(cumulative_usage_minutes=0, block_start_time=now,
                             allowance_start_time=0.0, phase_label="usage_block")
    return Decision(Phase.BLOCKING, BLOCK_SECONDS, new_state,
                    (ApplyShield(config.selection), PublishRestart("threshold_block_applied")),
                    transition="allowance->blocking")


def arm(config: RestrictionConfig, state: RestrictionState, now: float) -> Decision:
    """Start a fresh round in the configured mode."""
    if not config.is_active:
        return Decision(Phase.IDLE, 0, state)

    reset = (ClearShield(), CancelSchedules(tuple(ALL_ACTIVITIES)))

    if config.mode is BlockMode.INSTANT:
        start_at, end_at = _all_day(now)
        new_state = RestrictionState(block_start_time=now, phase_label=Phase.BLOCKING.value)
        effects = reset + (
            ApplyShield(config.selection),
            ArmSchedule(PROTECTION_ACTIVITY, start_at, end_at, recurring=True),
        )
        return Decision(Phase.BLOCKING, BLOCK_SECONDS, new_state, effects, transition="armed:instant")

    if config.mode is BlockMode.DELAYED:
        start_at = datetime.fromtimestamp(now + ALLOWANCE_SECONDS)
        end_at = max(start_at.replace(hour=23, minute=59, second=59, microsecond=0),
                     start_at + timedelta(hours=1))
        new_state = RestrictionState(allowance_start_time=now, phase_label="delayed_allowance")
        effects = reset + (ArmSchedule(DELAYED_BLOCK_ACTIVITY, start_at, end_at),)
        return Decision(Phase.ALLOWANCE, ALLOWANCE_SECONDS, new_state, effects, transition="armed:delayed")

    new_state = RestrictionState(phase_label="usage_allowance")
    return Decision(Phase.ALLOWANCE, USAGE_THRESHOLD_MINUTES * 60, new_state,
                    reset + (usage_schedule(now),), transition="armed:usage")


def disarm(state: RestrictionState) -> Decision:
    new_state = state.evolve(block_start_time=0.0, allowance_start_time=0.0,
                             cumulative_usage_minutes=0, phase_label=Phase.IDLE.value)
    return Decision(Phase.IDLE, 0, new_state,
                    (CancelSchedules(tuple(ALL_ACTIVITIES)), ClearShield()), transition="disarmed")


# --- service --------------------------------------------------------------

class LifecycleService:
    """Runs lifecycle decisions against the shared store, engine and schedules."""

    def __init__(self, store: SharedStateStore, engine, schedules=None, clock=time.time):
        self.store = store
        self.engine = engine
        self.schedules = schedules
        self.clock = clock

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def _commit(self, loaded: RestrictionState, decision: Decision, extra: dict = None) -> Decision:
        # The store write stands even if an engine or schedule call fails below.
        if decision.state != loaded:
            self.store.save_state(decision.state, extra)
        elif extra:
            self.store.set_many(extra)
        if decision.transition:
            logger.info("🔁 %s (remaining=%ss)", decision.transition, decision.remaining)
        self._execute(decision.effects)
        return decision

    def _execute(self, effects):
        for effect in effects:
            try:
                if isinstance(effect, ApplyShield):
                    self.engine.apply(effect.selection)
                elif isinstance(effect, ClearShield):
                    self.engine.clear()
                elif isinstance(effect, PublishRestart):
                    self.store.publish_restart(effect.reason)
                elif self.schedules is None:
                    logger.debug("No schedule adapter, skipping %s", effect)
                elif isinstance(effect, CancelSchedules):
                    self.schedules.cancel(effect.names)
                elif isinstance(effect, ArmSchedule):
                    self.schedules.arm(effect.name, effect.start_at, effect.end_at,
                                       recurring=effect.recurring, threshold=effect.threshold)
            except Exception:
                logger.exception("✗ Side effect failed: %s", effect)

    def _run(self, transition, now: Optional[float]) -> Decision:
        config = self.store.load_config()
        state = self.store.load_state()
        return self._commit(state, transition(config, state, self._now(now)))

    def update_phase(self, now: float = None) -> Decision:
        return self._run(update_phase, now)

    def start_delayed_block(self, now: float = None) -> Decision:
        return self._run(start_delayed_block, now)

    def register_usage_minute(self, now: float = None) -> Decision:
        return self._run(register_usage_minute, now)

    def status(self, now: float = None) -> Decision:
        """Read-only view of the current phase."""
        return current_phase(self.store.load_config(), self.store.load_state(), self._now(now))

    def arm(self, now: float = None) -> Decision:
        config = self.store.load_config()
        if not config.is_active:
            logger.warning("⚠️ Nothing to arm: protection disabled or selection empty")
        return self._run(arm, now)

    def disarm(self, now: float = None) -> Decision:
        state = self.store.load_state()
        return self._commit(state, disarm(state), extra={Keys.ENABLED: False})

    def setup(self, selection: Selection, mode: BlockMode, now: float = None) -> Decision:
        """Save a new configuration, enable protection and arm it."""
        if selection is None or selection.is_empty:
            raise ConfigurationError("Select at least one app, category or website")
        self.store.save_config(RestrictionConfig(selection=selection, mode=BlockMode(mode), enabled=True))
        self.store.set(Keys.SETUP_COMPLETE, True)
        logger.info("⚙️ Protection configured: %d target(s), mode=%s", len(selection), BlockMode(mode).value)
        return self.arm(now)

    def enable(self, now: float = None) -> Decision:
        """Turn protection back on with the saved selection."""
        config = self.store.load_config()
        if config.selection is None or config.selection.is_empty:
            raise ConfigurationError("No saved selection to protect")
        self.store.set(Keys.ENABLED, True)
        return self.arm(now)

    def resync(self, now: float = None) -> List[str]:
        """Consume restart events and re-derive the schedule they invalidated."""
        events = self.store.consume_restart_events()
        if not events:
            return events
        logger.info("📬 Restart events: %s", ", ".join(events))
        config = self.store.load_config()
        if (config.is_active and config.mode is BlockMode.USAGE and self.schedules is not None
                and not self.schedules.is_armed(PROTECTION_ACTIVITY)):
            self._execute((usage_schedule(self._now(now)),))
        return events

    def cleanup_orphans(self):
        """Clear shields left behind by an earlier install before setup ever completed."""
        if self.store.get(Keys.SETUP_COMPLETE, False) or self.store.get(Keys.ENABLED, False):
            return False
        self._execute((ClearShield(),))
        for key in (Keys.BLOCK_START, Keys.ALLOWANCE_START, Keys.USAGE_MINUTES):
            self.store.delete(key)
        logger.info("🧹 Orphaned shields cleared")
        return True
