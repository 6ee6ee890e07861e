import os
import tempfile
from urllib.parse import urlparse

import pytest


def _database_settings() -> dict:
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        path = os.path.join(tempfile.mkdtemp(prefix="versioned-mutation-"), "test.sqlite3")
        return {"ENGINE": "django.db.backends.sqlite3", "NAME": path}

    u = urlparse(database_url)
    if u.scheme not in {"postgres", "postgresql"}:
        pytest.skip(f"Unsupported DATABASE_URL scheme: {u.scheme!r}")

    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": (u.path or "").lstrip("/"),
        "USER": u.username or "",
        "PASSWORD": u.password or "",
        "HOST": u.hostname or "localhost",
        "PORT": str(u.port or 5432),
        "CONN_MAX_AGE": 0,
    }


def _configure_django_if_needed() -> None:
    """Configure a minimal Django DB setup (once per test run)."""
    from django.conf import settings

    if settings.configured:
        return

    settings.configure(
        SECRET_KEY="test",
        INSTALLED_APPS=[],
        DATABASES={"default": _database_settings()},
        TIME_ZONE="UTC",
        USE_TZ=True,
    )

    import django

    django.setup()


@pytest.fixture(scope="session")
def django_configured() -> None:
    _configure_django_if_needed()
