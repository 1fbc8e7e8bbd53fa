import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timesheet_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

TIMEZONE = "Europe/London"
DEFAULT_EXPECTED_HOURS = 8.0
EXPECTED_HOURS_POLICY = "fixed"
LATE_GRACE_MINUTES = 5
POLL_INTERVAL_SECONDS = 15

LOG_LEVEL = "WARNING"
