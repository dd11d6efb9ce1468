"""Runtime tunables read from the environment."""
import os

# Hard business rule, deliberately not configurable
OVERRIDE_MAX_DAYS = 14

EXPIRING_SOON_DAYS = int(os.getenv("COMPLIANCE_EXPIRING_SOON_DAYS", "30"))

# Bound on every certification store read; a timeout takes the fail-closed path
DB_TIMEOUT_SECONDS = float(os.getenv("COMPLIANCE_DB_TIMEOUT_SECONDS", "5"))

# Remote evaluate-compliance endpoint used by RemoteComplianceClient
SERVICE_URL = os.getenv("COMPLIANCE_SERVICE_URL", "http://localhost:8000")
HTTP_TIMEOUT_SECONDS = float(os.getenv("COMPLIANCE_HTTP_TIMEOUT_SECONDS", "10"))

# JSONL file receiving audit entries whose write failed (unset = log only)
AUDIT_DEAD_LETTER_PATH = os.getenv("AUDIT_DEAD_LETTER_PATH")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
