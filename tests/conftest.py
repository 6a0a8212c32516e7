"""
Test configuration: repo root on sys.path and a throwaway environment.

The environment is set before any application module is imported:
helpers.tortoise_config refuses to load without DATABASE_URI.
"""

import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ["DATABASE_URI"] = "sqlite://:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["SCHEDULER_TIMEZONE"] = "America/Denver"
os.environ.pop("FREEDOM_APP_WEBHOOK_URL", None)
os.environ.pop("PHONE_ALARM_ENDPOINTS", None)
