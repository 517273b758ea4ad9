"""
Runtime configuration

Everything is read from the environment once, at import time.
"""
import os


def _flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

JWT_SECRET = os.getenv("JWT_SECRET", "appifyours-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", 30))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))

PORT = int(os.getenv("PORT", 3000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_ADMIN_ID = os.getenv("DEFAULT_ADMIN_ID", "6911f0e70c45b790ce0115d2")
SHOP_NAME = os.getenv("SHOP_NAME", "phoneshop")
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "+91")

STOREFRONT_BASE_URL = os.getenv("STOREFRONT_BASE_URL", "http://localhost:3000")

FEATURES = {
    "searchEnabled": _flag("FEATURE_SEARCH"),
    "cartEnabled": _flag("FEATURE_CART"),
    "userRegistrationEnabled": _flag("FEATURE_REGISTRATION"),
    "orderTrackingEnabled": _flag("FEATURE_ORDER_TRACKING"),
}
