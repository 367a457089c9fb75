import os
from dotenv import load_dotenv

# 1. Load environment variables from .env file
load_dotenv()

# 2. Database URL. Fail fast if it's missing.
DATABASE_URL = os.environ.get("DATABASE_URL")

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is not set. Please check your .env file.")

SQL_ECHO = os.environ.get("SQL_ECHO", "false").lower() in ("1", "true", "yes")

# 3. Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# 4. Ledger: how many times a write retries after losing a court-day race
LEDGER_MAX_ATTEMPTS = int(os.environ.get("LEDGER_MAX_ATTEMPTS", "5"))

if LEDGER_MAX_ATTEMPTS < 1:
    raise ValueError(f"LEDGER_MAX_ATTEMPTS must be at least 1, got {LEDGER_MAX_ATTEMPTS}")

# 5. CORS
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
