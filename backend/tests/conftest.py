import os
import shutil
import tempfile
from pathlib import Path

import pytest_asyncio


# Configure a throwaway database and quiet integrations before importing
# cla_backend modules; settings and service singletons read these at import.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="cla_pytest_"))

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_SESSION_DIR / 'cla.db'}")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("GITHUB_ORG_VALIDATION", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-signing-tokens-0123")
os.environ.setdefault("GITHUB_OAUTH_TOKEN", "test-token")


def pytest_sessionfinish(session, exitstatus):
    """Cleanup temporary test files after the test session."""
    shutil.rmtree(_SESSION_DIR, ignore_errors=True)


@pytest_asyncio.fixture
async def db(tmp_path):
    """A fresh SQLite database with all tables created."""
    from cla_backend.services.database_service import DatabaseService

    service = DatabaseService(f"sqlite+aiosqlite:///{tmp_path / 'cla.db'}")
    await service.init_db()
    yield service
    await service.close()
