import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timesheet_db"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

TIMEZONE = os.getenv("TIMEZONE", "Europe/London")
DEFAULT_EXPECTED_HOURS = float(os.getenv("DEFAULT_EXPECTED_HOURS", "8"))
# "fixed" always uses DEFAULT_EXPECTED_HOURS, "shift" derives it from the assigned shift
EXPECTED_HOURS_POLICY = os.getenv("EXPECTED_HOURS_POLICY", "fixed")
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "5"))
POLL_INTERVAL_SECONDS = int(os.getenv("POLL_INTERVAL_SECONDS", "15"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
