"""Root conftest — shared test configuration."""

import os

# Tests never reach a real database, webhook or admin secret
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
