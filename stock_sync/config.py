"""Configuration and settings."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("STOCK_SYNC_DATA_DIR", "") or PROJECT_ROOT / "data")
STATE_PATH = DATA_DIR / "state.json"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database (catalog + sync logs)
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'stock_sync.db'}")

# Logging
LOG_DIR = DATA_DIR / "logs"
LOG_FILE = LOG_DIR / "app.jsonl"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"

# Ensure log directory exists
LOG_DIR.mkdir(parents=True, exist_ok=True)

# OpenTelemetry
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "false").lower() == "true"
OTLP_TRACES_ENDPOINT = os.getenv("OTLP_TRACES_ENDPOINT", "http://localhost:4318/v1/traces")
SERVICE_NAME = os.getenv("SERVICE_NAME", "stock-sync")
DEPLOYMENT_ENVIRONMENT = os.getenv("DEPLOYMENT_ENVIRONMENT", "development")

# License API
LICENSE_API_URL = os.getenv("LICENSE_API_URL", "https://3ag.app/api/v3").rstrip("/")
LICENSE_PRODUCT_SLUG = os.getenv("LICENSE_PRODUCT_SLUG", "woo-stock-sync-from-csv")
LICENSE_TIMEOUT_SECONDS = float(os.getenv("LICENSE_TIMEOUT_SECONDS", "30"))
LICENSE_GRACE_PERIOD_DAYS = int(os.getenv("LICENSE_GRACE_PERIOD_DAYS", "7"))
# Domain the license is activated for (host of this URL, without www. and port)
SITE_URL = os.getenv("SITE_URL", "http://localhost")

# Feed fetch
FEED_TIMEOUT_SECONDS = float(os.getenv("FEED_TIMEOUT_SECONDS", "120"))
PREVIEW_TIMEOUT_SECONDS = float(os.getenv("PREVIEW_TIMEOUT_SECONDS", "30"))

# Reconciliation
SYNC_BATCH_SIZE = int(os.getenv("SYNC_BATCH_SIZE", "100"))
RUN_LEASE_SECONDS = int(os.getenv("RUN_LEASE_SECONDS", "1800"))
MANUAL_SYNC_COOLDOWN_SECONDS = int(os.getenv("MANUAL_SYNC_COOLDOWN_SECONDS", "30"))

# Run log retention (oldest entries pruned first)
LOG_RETENTION = int(os.getenv("LOG_RETENTION", "100"))

# Trigger runner: how often due triggers are polled
RUNNER_TICK_SECONDS = float(os.getenv("RUNNER_TICK_SECONDS", "30"))

# HTTP API
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
