"""Settings for the shop catalog API."""

import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _seconds(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, "").strip())
    except ValueError:
        return default
    return value if value > 0 else default


SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip().rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()
REQUEST_TIMEOUT = _seconds("REQUEST_TIMEOUT", 15.0)

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
CATALOG_PATH = os.getenv("CATALOG_PATH", os.path.join(BASE_DIR, "data", "catalog.json"))

# Basic-auth fallback for the admin area (Cloudflare Access headers win)
WORKSHOP_USER = os.getenv("WORKSHOP_USER", "")
WORKSHOP_PASS = os.getenv("WORKSHOP_PASS", "")
ADMIN_AUTH_REQUIRED = _flag("ADMIN_AUTH_REQUIRED")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DEFAULT_LIMIT = 100
MAX_LIMIT = 200
SLUG_MAX_LEN = 60

SHOP_COLUMNS = (
    "product_num",
    "my_title",
    "amazon_title",
    "my_description_short",
    "image_main",
    "affiliate_link",
    "amazon_category",
    "shop_category_id",
    "approved",
    "created_at",
)

ADMIN_COLUMNS = (
    "product_num",
    "my_title",
    "amazon_title",
    "image_main",
    "amazon_category",
    "archived_at",
    "created_at",
)

CATEGORY_COLUMNS = ("id", "name", "slug")
