"""Tests for the shield content provider."""
import pytest

from breakshield.config import BLOCK_SECONDS
from breakshield.database import BlockMode, Keys
from breakshield.services.shield import ShieldProvider, ShieldTarget

from conftest import T0


@pytest.fixture
def provider(service):
    return ShieldProvider(service)


def test_unset_block_start_shows_full_countdown(provider, configure, store, engine):
    configure(BlockMode.INSTANT)
    store.set(Keys.BLOCK_START, 0)

    shield = provider.configuration(ShieldTarget.APPLICATION, now=T0 + 301)
    assert shield.remaining == BLOCK_SECONDS
    assert shield.cleared is False
    assert "5:00" in shield.subtitle
    assert engine.clears == 0


def test_countdown_label(provider, service, configure, clock):
    configure(BlockMode.INSTANT)
    service.arm()

    shield = provider.configuration(ShieldTarget.WEB_DOMAIN, now=T0 + 75)
    assert shield.remaining == 225
    assert "3:45" in shield.subtitle
    assert shield.primary_button == "Okay, I'll wait"


def test_every_target_kind_gets_the_same_shield(provider, service, configure):
    configure(BlockMode.INSTANT)
    service.arm()
    shields = {provider.configuration(target, now=T0 + 10) for target in ShieldTarget}
    assert len(shields) == 1


def test_expired_block_is_cleared_by_the_shield(provider, service, configure, store, engine, schedules):
    configure(BlockMode.INSTANT)
    service.arm()
    clears_before = engine.clears

    shield = provider.configuration(ShieldTarget.APPLICATION_IN_CATEGORY, now=T0 + BLOCK_SECONDS)
    assert shield.cleared is True
    assert shield.title.startswith("Break complete")
    assert engine.clears == clears_before + 1
    assert store.load_state().block_start_time == 0
    assert schedules.armed == {}
    assert store.consume_restart_events() == ["shield_cleared"]


def test_shield_after_poller_cleared_does_not_clear_twice(provider, service, configure, engine, clock):
    configure(BlockMode.INSTANT)
    service.arm()
    clock.now = T0 + BLOCK_SECONDS
    service.update_phase()
    clears = engine.clears

    provider.configuration(ShieldTarget.APPLICATION, now=T0 + BLOCK_SECONDS + 5)
    assert engine.clears == clears


def test_expired_block_after_protection_turned_off(provider, service, configure, store, engine):
    configure(BlockMode.INSTANT)
    service.arm()
    # disabled by a writer that never lifted the shield
    store.set(Keys.ENABLED, False)
    clears_before = engine.clears

    shield = provider.configuration(ShieldTarget.APPLICATION, now=T0 + BLOCK_SECONDS + 10)
    assert shield.cleared is True
    assert engine.clears == clears_before + 1
    assert store.load_state().block_start_time == 0
    assert store.consume_restart_events() == ["shield_cleared"]
