# config.py
# Environment-backed settings and shop constants for the Aro Bazzar backend.
# Values can be put in a .env file next to app.py.

import os
import datetime

from dotenv import load_dotenv

load_dotenv()


def _env_list(name, default):
    raw = os.getenv(name, default) or ""
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


# --- Core ---
DB_NAME = os.getenv("ARO_DB_NAME", "aro_bazzar.db")
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or os.urandom(24).hex()
JWT_ACCESS_TOKEN_EXPIRES = datetime.timedelta(hours=int(os.getenv("JWT_ACCESS_TOKEN_HOURS", "24")))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
BCRYPT_LOG_ROUNDS = int(os.getenv("BCRYPT_LOG_ROUNDS", "12"))

# --- Admin accounts ---
ADMIN_EMAILS = _env_list("ADMIN_EMAILS", "admin@example.com")
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com").strip().lower()
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "changethispassword")
PASSWORD_MIN_LENGTH = 6

# --- Uploads ---
UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH_MB", "50")) * 1024 * 1024
STORAGE_BUCKETS = ("avatars", "products", "backgrounds")
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
VIDEO_EXTENSIONS = {"mp4", "webm", "mov"}
AVATAR_EXTENSIONS = {"jpg", "jpeg", "png", "gif"}
AVATAR_MAX_BYTES = 2 * 1024 * 1024

# --- Catalog ---
PRODUCT_TYPES = ("fish", "accessories", "food")
PRODUCT_CATEGORIES = {
    "fish": ["Arowana", "Discus", "Silver Dollar"],
    "accessories": ["Filter", "Heater", "Lighting", "Decoration"],
    "food": ["Pellets", "Flakes", "Frozen Food", "Live Food"],
}
FEATURED_FISH_TYPES = ("arowana", "discus", "silver_dollar")
SORT_OPTIONS = ("newest", "price-low", "price-high")

# --- Orders ---
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed")
DEFAULT_PAYMENT_METHOD = "Cash on Delivery"
DEFAULT_SHIPPING_ADDRESS = "Default Address"

# --- Content ---
OFFER_CATEGORIES = ("all", "arowana", "discus", "silver-dollar", "fish-food", "accessories")
PAGE_STATUSES = ("draft", "published")
