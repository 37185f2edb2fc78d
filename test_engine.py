"""Tests for the local process shield engine."""
import threading
from types import SimpleNamespace

import psutil
import pytest

from breakshield.selection import Selection
from breakshield.services import engine as engine_module
from breakshield.services.engine import (
    APPLICATION,
    APPLICATION_CATEGORY,
    WEB_DOMAIN,
    ProcessShieldEngine,
    run_enforcement,
)
from breakshield.services.shield import ShieldConfiguration


@pytest.fixture
def shield_engine(session_factory):
    return ProcessShieldEngine(session_factory)


def test_apply_is_idempotent(shield_engine, session_factory):
    selection = Selection.of(applications=["TikTok"], categories=["games"], web_domains=["reddit.com"])
    shield_engine.apply(selection)
    shield_engine.apply(selection)

    assert shield_engine.shielded(APPLICATION) == {"tiktok"}
    assert shield_engine.shielded(APPLICATION_CATEGORY) == {"games"}
    assert shield_engine.shielded(WEB_DOMAIN) == {"reddit.com"}
    assert shield_engine.active

    # visible to an engine in another process
    assert ProcessShieldEngine(session_factory).is_website_blocked("old.reddit.com")


def test_clear_without_apply(shield_engine):
    shield_engine.clear()
    assert not shield_engine.active


def test_clear_removes_every_kind(shield_engine):
    shield_engine.apply(Selection.of(applications=["a"], categories=["c"], web_domains=["d.com"]))
    shield_engine.clear()
    assert not shield_engine.active
    assert not shield_engine.is_website_blocked("d.com")
    assert not shield_engine.is_category_blocked("c")


class FakeProcess:
    def __init__(self, pid, name):
        self.info = {'pid': pid, 'name': name}


def test_enforce_terminates_shielded_processes(shield_engine, monkeypatch):
    terminated = []
    monkeypatch.setattr(engine_module.psutil, "process_iter",
                        lambda attrs: [FakeProcess(1, "TikTok Helper"), FakeProcess(2, "python")])
    monkeypatch.setattr(engine_module.psutil, "pid_exists", lambda pid: True)
    monkeypatch.setattr(engine_module.psutil, "Process",
                        lambda pid: SimpleNamespace(terminate=lambda: terminated.append(pid)))

    rendered = []
    shield = ShieldConfiguration("t", "s", "b", remaining=120)
    shield_engine.set_shield_provider(SimpleNamespace(configuration=lambda target: shield))
    shield_engine.set_warning_callback(lambda name, pid, config: rendered.append((name, pid, config)))

    assert shield_engine.enforce_once() == 0

    shield_engine.apply(Selection.of(applications=["tiktok"]))
    assert shield_engine.enforce_once() == 1
    assert terminated == [1]
    assert rendered == [("TikTok Helper", 1, shield)]

    # warned within the cooldown: terminated again, not re-warned
    shield_engine.enforce_once()
    assert terminated == [1, 1]
    assert len(rendered) == 1


def test_enforcement_loop_stops_on_event():
    stop = threading.Event()
    calls = []

    class OneShotEngine:
        supported = True

        def enforce_once(self):
            calls.append(1)
            if len(calls) == 1:
                raise psutil.Error("transient")
            stop.set()
            return 0

    run_enforcement(OneShotEngine(), interval=0, stop_event=stop)
    assert len(calls) == 2


def test_unsupported_platform_records_shield_without_enforcing(shield_engine, monkeypatch):
    def no_process_scan(attrs):
        raise AssertionError("process scan on an unsupported platform")

    monkeypatch.setattr(engine_module.psutil, "process_iter", no_process_scan)
    shield_engine.system = "Plan9"
    shield_engine.apply(Selection.of(applications=["tiktok"]))

    assert not shield_engine.supported
    assert shield_engine.active
    assert shield_engine.enforce_once() == 0

    stop = threading.Event()
    stop.set()
    run_enforcement(shield_engine, interval=0, stop_event=stop)


def test_category_lookup(shield_engine):
    shield_engine.apply(Selection.of(categories=["Social"]))
    assert shield_engine.is_category_blocked("social")
    assert not shield_engine.is_category_blocked("games")
