"""Simple test to verify BreakShield installation."""
import sys
import tempfile
from pathlib import Path


def test_imports():
    """Test that all required modules can be imported."""
    print("Testing imports...")

    # Core dependencies
    import flet  # noqa: F401
    print("✅ Flet")

    import fastapi  # noqa: F401
    print("✅ FastAPI")

    import sqlalchemy  # noqa: F401
    print("✅ SQLAlchemy")

    import psutil  # noqa: F401
    print("✅ psutil")

    from apscheduler.schedulers.background import BackgroundScheduler  # noqa: F401
    print("✅ APScheduler")

    # BreakShield modules
    from breakshield.database import init_database, SharedStateStore  # noqa: F401
    print("✅ Database module")

    from breakshield.services import LifecycleService, ProcessShieldEngine, ScheduleAdapter  # noqa: F401
    print("✅ Services module")

    from breakshield.api import app  # noqa: F401
    print("✅ API module")

    from breakshield.ui import create_ui  # noqa: F401
    print("✅ UI module")

    print("\n🎉 All imports successful!")


def test_database():
    """Test database creation."""
    print("\nTesting database...")
    from breakshield.database import SharedStateStore, init_database

    with tempfile.TemporaryDirectory() as tmp:
        session_factory = init_database(f"sqlite:///{Path(tmp) / 'test.db'}")
        store = SharedStateStore(session_factory)
        assert store.load_config().enabled is False
        print("✅ Database created successfully")
        session_factory.kw["bind"].dispose()


def test_api():
    """Test API can be created."""
    print("\nTesting API...")
    from breakshield.api import app

    # Check routes exist
    routes = [route.path for route in app.routes]
    assert "/" in routes
    assert "/status" in routes
    assert "/protection" in routes
    assert "/shield/{target}" in routes

    print("✅ API routes configured")


def main():
    """Run all tests."""
    print("=" * 50)
    print("BreakShield Installation Test")
    print("=" * 50)
    print()

    tests = [
        ("Imports", test_imports),
        ("Database", test_database),
        ("API", test_api),
    ]

    results = []
    for name, test_func in tests:
        print(f"\n--- {name} ---")
        try:
            test_func()
            results.append(True)
        except ImportError as e:
            print(f"\n❌ Import failed: {e}")
            print("\nRun: uv sync")
            results.append(False)
        except Exception as e:
            print(f"❌ {name} test failed: {e}")
            results.append(False)

    print("\n" + "=" * 50)
    print("Test Summary")
    print("=" * 50)

    for i, (name, _) in enumerate(tests):
        status = "✅ PASS" if results[i] else "❌ FAIL"
        print(f"{status} - {name}")

    if all(results):
        print("\n🎉 All tests passed! BreakShield is ready to use.")
        print("\nRun: uv run breakshield")
    else:
        print("\n❌ Some tests failed. Please fix the issues above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
