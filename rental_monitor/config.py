import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DRY_RUN = _env_bool("DRY_RUN", "false")

# Validated by create_db_engine() so that imports never fail without a database
DATABASE_URL = os.getenv("DATABASE_URL")

SCHEMA = os.getenv("DB_SCHEMA", "public")

# Enrichment
ENABLE_HD_IMAGES = _env_bool("ENABLE_HD_IMAGES", "true")
MAX_HD_PROPERTIES_PER_QUERY = _env_int("MAX_HD_PROPERTIES_PER_QUERY", 7)
HD_IMAGE_DELAY_MS = _env_int("HD_IMAGE_DELAY_MS", 2000)
MAX_IMAGES_PER_PROPERTY = _env_int("MAX_IMAGES_PER_PROPERTY", 20)

# Search
MAX_PAGES = _env_int("MAX_PAGES", 1)
SEARCH_PAGE_SIZE = _env_int("SEARCH_PAGE_SIZE", 25)
SEARCH_TIMEOUT_SECONDS = _env_int("SEARCH_TIMEOUT_SECONDS", 30)
DETAIL_TIMEOUT_SECONDS = _env_int("DETAIL_TIMEOUT_SECONDS", 60)

# Scheduling
USER_BATCH_SIZE = _env_int("USER_BATCH_SIZE", 3)
BATCH_DELAY_MS = _env_int("BATCH_DELAY_MS", 2000)

# Push delivery (APNs token authentication)
APN_AUTH_KEY = os.getenv("APN_AUTH_KEY")
APN_KEY_ID = os.getenv("APN_KEY_ID")
APN_TEAM_ID = os.getenv("APN_TEAM_ID")
APN_BUNDLE_ID = os.getenv("APN_BUNDLE_ID")
APN_PRODUCTION = _env_bool("APN_PRODUCTION", "false")

PUSHGATEWAY_URL = os.getenv("PUSHGATEWAY_URL")
