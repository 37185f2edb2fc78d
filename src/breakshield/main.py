"""Main application entry point."""

import logging
import threading
import time
from pathlib import Path

from .config import DATA_DIR, configure_logging
from .database import SharedStateStore, init_database
from .services import LifecycleService, ProcessShieldEngine, ScheduleAdapter, ShieldProvider
from .api import set_services, start as start_api

logger = logging.getLogger(__name__)


def ensure_data_directory():
    """Ensure data directory exists."""
    data_dir = Path(DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def build_controller(session_factory):
    """Wire the controller-side services."""
    store = SharedStateStore(session_factory)
    engine = ProcessShieldEngine(session_factory)
    schedules = ScheduleAdapter()
    service = LifecycleService(store, engine, schedules)
    provider = ShieldProvider(service)
    engine.set_shield_provider(provider)
    return service, provider, engine


def start_api_server(service, provider, engine):
    """Start FastAPI server in background thread."""
    set_services(service, provider, engine)

    api_thread = threading.Thread(target=start_api, daemon=True)
    api_thread.start()
    print("✅ API server started")

    return api_thread


def main():
    """Main application entry point."""
    configure_logging()
    print("🚀 Starting BreakShield...")

    ensure_data_directory()

    print("📦 Initializing database...")
    session_factory = init_database()

    service, provider, engine = build_controller(session_factory)
    service.cleanup_orphans()

    print("🌐 Starting API server...")
    api_thread = start_api_server(service, provider, engine)

    # Give API server time to start
    time.sleep(1)

    try:
        import flet as ft
        from .ui import create_ui
    except ImportError as e:
        # No desktop UI on this platform; keep serving the API.
        logger.warning("⚠️ Controller window unavailable (%s), running API only", e)
        ft = None

    try:
        if ft is not None:
            print("🎨 Starting UI...")
            ft.app(target=create_ui(service))
        else:
            api_thread.join()
    except KeyboardInterrupt:
        print("\n👋 Shutting down BreakShield...")
    finally:
        service.schedules.shutdown()
        print("✅ Shutdown complete")


if __name__ == "__main__":
    main()
