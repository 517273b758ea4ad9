"""
Read-only access to tenant configuration and product listings.
"""
import logging
from typing import List, Optional

import pydantic
from bson import ObjectId
from pymongo.database import Database

import config
from accounts import tenant_oid
from database import ACCOUNTS, APP_CONFIGS
from errors import NotFound, ValidationError
from schemas import ScreenConfig, default_screen_config

logger = logging.getLogger(__name__)


def load_app_config(database: Database, admin_object_id: Optional[str]) -> dict:
    tenant = tenant_oid(admin_object_id)
    doc = database[APP_CONFIGS].find_one({"_id": tenant})
    if not doc:
        raise NotFound("App configuration not found")
    return doc


def product_cards(doc: dict) -> List[dict]:
    return (doc.get("dynamicFields") or {}).get("productCards") or []


def get_products(database: Database, admin_object_id: str) -> List[dict]:
    return product_cards(load_app_config(database, admin_object_id))


def matches(product: dict, query: str) -> bool:
    needle = query.lower()
    for field in ("productName", "description"):
        value = product.get(field)
        if value and needle in str(value).lower():
            return True
    return False


def search_products(database: Database, admin_object_id: str, query: str) -> List[dict]:
    products = get_products(database, admin_object_id)
    return [p for p in products if matches(p, query)]


def app_config(database: Database, admin_object_id: str) -> dict:
    """Splash metadata. The tenant document is read as stored, not validated."""
    doc = load_app_config(database, admin_object_id)
    user_count = database[ACCOUNTS].count_documents({"adminObjectId": doc["_id"]})
    return {
        "appName": doc.get("appName") or doc.get("shopName") or "My App",
        "shopName": doc.get("shopName"),
        "category": doc.get("category"),
        "pages": doc.get("pages") or [],
        "dynamicFields": doc.get("dynamicFields"),
        "userCount": user_count,
        "lastUpdated": doc.get("updatedAt"),
    }


def screen_config(database: Database, admin_object_id: Optional[str], screen: Optional[str] = None) -> dict:
    if not admin_object_id or not ObjectId.is_valid(admin_object_id):
        raise ValidationError("Valid adminObjectId is required")
    doc = database[APP_CONFIGS].find_one({"_id": ObjectId(admin_object_id)})
    if not doc:
        raise NotFound("Screen configuration not found")
    stored = doc.get("screenConfig")
    if not stored:
        return default_screen_config(screen).model_dump(by_alias=True)
    try:
        return ScreenConfig.model_validate(stored).model_dump(by_alias=True)
    except pydantic.ValidationError as e:
        logger.error("Unsupported screen configuration on %s: %s", doc["_id"], e)
        raise ValidationError("Unsupported screen configuration")


def feature_flags() -> dict:
    return {
        "adminId": config.DEFAULT_ADMIN_ID,
        "shopName": config.SHOP_NAME,
        "features": dict(config.FEATURES),
    }
