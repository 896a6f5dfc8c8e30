# This project was developed with assistance from AI tools.
"""Suite-wide environment.

Settings objects are built at import time, so the environment is pinned
here before any ``src`` module is collected.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_DISABLED", "false")
os.environ.setdefault("SQLADMIN_ENABLED", "false")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("DB_CREATE_ALL", "false")
os.environ.setdefault("DOCUSIGN_HMAC_KEY", "test-connect-secret")
