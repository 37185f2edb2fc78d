"""Shield content provider.

Called by the restriction engine every time a shielded target is about
to be shown. It is the one context guaranteed to run when the user
actually tries to get back in, so it also ends an expired block itself.
The shield being rendered is already committed at that point: the block
is lifted for the next attempt, not this one.
"""
import enum
import logging
from dataclasses import dataclass

from ..config import BLOCK_SECONDS
from ..utils.helpers import format_countdown
from . import lifecycle

logger = logging.getLogger(__name__)


class ShieldTarget(str, enum.Enum):
    APPLICATION = "application"
    APPLICATION_IN_CATEGORY = "application_in_category"
    WEB_DOMAIN = "web_domain"
    WEB_DOMAIN_IN_CATEGORY = "web_domain_in_category"


@dataclass(frozen=True)
class ShieldConfiguration:
    title: str
    subtitle: str
    primary_button: str
    remaining: int
    cleared: bool = False

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "primary_button": self.primary_button,
            "remaining": self.remaining,
            "cleared": self.cleared,
        }


def countdown_configuration(remaining: int) -> ShieldConfiguration:
    return ShieldConfiguration(
        title="Taking a break from doomscrolling 🌱",
        subtitle=(f"You can access this again in {format_countdown(remaining)}\n\n"
                  "Use this time to work on your goals!"),
        primary_button="Okay, I'll wait",
        remaining=remaining,
    )


def break_complete_configuration() -> ShieldConfiguration:
    return ShieldConfiguration(
        title="Break complete! 🌱",
        subtitle="Your 5-minute break is over. The block has been removed.\n\nTap OK and try again!",
        primary_button="OK",
        remaining=0,
        cleared=True,
    )


class ShieldProvider:
    """Computes what a shield shows, for every kind of shielded target."""

    def __init__(self, service):
        self.service = service

    def configuration(self, target: ShieldTarget = ShieldTarget.APPLICATION,
                      now: float = None) -> ShieldConfiguration:
        target = ShieldTarget(target)
        now = self.service.clock() if now is None else now
        state = self.service.store.load_state()
        logger.info("[SHIELD] Configuration requested for %s", target.value)

        if state.block_start_time <= 0:
            # Shield applied before the start time landed in the store.
            logger.warning("[SHIELD] ⚠️ blockStartTime is 0, showing the full countdown")
            return countdown_configuration(BLOCK_SECONDS)

        if now - state.block_start_time < BLOCK_SECONDS:
            remaining = lifecycle.remaining_seconds(state.block_start_time, now, BLOCK_SECONDS)
            logger.info("[SHIELD] ⏳ Still in cooldown: %s", format_countdown(remaining))
            return countdown_configuration(remaining)

        logger.info("[SHIELD] ⏰ Block elapsed, clearing shield")
        decision = self.service.update_phase(now)
        if decision.phase is lifecycle.Phase.IDLE:
            # Protection was turned off without the shield being lifted.
            logger.info("[SHIELD] Protection inactive, removing leftover shield")
            decision = self.service.disarm(now)
        if decision.transition:
            self.service.store.publish_restart("shield_cleared")
        return break_complete_configuration()
