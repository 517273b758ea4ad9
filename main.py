import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

import accounts
import cart
import catalog
import config
import database
from auth import Identity, current_identity
from database import ensure_indexes, get_db, now, serialize
from errors import StoreError
from schemas import (
    AddToCartRequest,
    AddToWishlistRequest,
    CheckRequest,
    CreateUserRequest,
    LoginRequest,
    RegisterRequest,
    UpdateQuantityRequest,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        ensure_indexes(database.db)
        logger.info("Connected to MongoDB database %s", config.DATABASE_NAME)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; data routes will fail")
    yield


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def ok(data=None, **extra) -> dict:
    body = {"success": True}
    body.update(extra)
    if data is not None:
        body["data"] = serialize(data)
    return body


# Error envelope

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


# Tenant configuration and catalog

@app.get("/api/get-screen-config")
def get_screen_config(adminObjectId: str = None, screen: str = None, db: Database = Depends(get_db)):
    return ok(catalog.screen_config(db, adminObjectId, screen))


@app.get("/api/app-config")
def get_feature_flags():
    return ok(dict(catalog.feature_flags(), lastUpdated=now()))


@app.get("/api/app-config/{adminObjectId}")
def get_app_config(adminObjectId: str, db: Database = Depends(get_db)):
    return ok(catalog.app_config(db, adminObjectId))


@app.get("/api/products/{adminObjectId}")
def list_products(adminObjectId: str, db: Database = Depends(get_db)):
    return ok(catalog.get_products(db, adminObjectId))


@app.get("/api/products/search/{adminObjectId}/{query:path}")
def search_products(adminObjectId: str, query: str, db: Database = Depends(get_db)):
    return ok(catalog.search_products(db, adminObjectId, query))


# Accounts

@app.post("/api/create-user")
def create_user(payload: CreateUserRequest, db: Database = Depends(get_db)):
    return ok(accounts.create_user(db, payload), message="User created successfully")


@app.post("/api/users/register")
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    return ok(accounts.register(db, payload), message="Account created successfully")


@app.post("/api/users/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    return ok(accounts.login(db, payload), message="Login successful")


@app.post("/api/users/check")
def check_user(payload: CheckRequest, db: Database = Depends(get_db)):
    return ok(exists=accounts.exists(db, payload))


@app.get("/api/users/profile")
def get_profile(identity: Identity = Depends(current_identity), db: Database = Depends(get_db)):
    return ok(accounts.profile(db, identity))


# Cart

@app.get("/api/users/cart")
def get_cart(identity: Identity = Depends(current_identity), db: Database = Depends(get_db)):
    return ok(cart.get_cart(db, identity))


@app.post("/api/users/cart")
def add_to_cart(payload: AddToCartRequest, identity: Identity = Depends(current_identity),
                db: Database = Depends(get_db)):
    return ok(cart.add_to_cart(db, identity, payload))


@app.put("/api/users/cart/{productId}")
def update_cart_item(productId: str, payload: UpdateQuantityRequest,
                     identity: Identity = Depends(current_identity), db: Database = Depends(get_db)):
    return ok(cart.update_quantity(db, identity, productId, payload.quantity))


@app.delete("/api/users/cart/{productId}")
def remove_cart_item(productId: str, identity: Identity = Depends(current_identity),
                     db: Database = Depends(get_db)):
    return ok(cart.remove_from_cart(db, identity, productId))


# Wishlist

@app.get("/api/users/wishlist")
def get_wishlist(identity: Identity = Depends(current_identity), db: Database = Depends(get_db)):
    return ok(cart.get_wishlist(db, identity))


@app.post("/api/users/wishlist")
def add_to_wishlist(payload: AddToWishlistRequest, identity: Identity = Depends(current_identity),
                    db: Database = Depends(get_db)):
    return ok(cart.add_to_wishlist(db, identity, payload))


@app.delete("/api/users/wishlist/{productId}")
def remove_wishlist_item(productId: str, identity: Identity = Depends(current_identity),
                         db: Database = Depends(get_db)):
    return ok(cart.remove_from_wishlist(db, identity, productId))


# Orders

@app.post("/api/users/orders")
def place_order(identity: Identity = Depends(current_identity), db: Database = Depends(get_db)):
    order = cart.place_order(db, identity)
    return ok(order.model_dump(by_alias=True), message="Order placed successfully")


@app.get("/api/users/orders")
def get_orders(identity: Identity = Depends(current_identity), db: Database = Depends(get_db)):
    return ok(cart.get_orders(db, identity))


# Diagnostics

@app.get("/health")
def health():
    return {"status": "OK", "timestamp": now().isoformat()}


@app.get("/test")
def test_database():
    resp = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if config.DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    if database.db is None:
        return resp
    resp["database"] = "✅ Available"
    try:
        resp["collections"] = database.db.list_collection_names()[:10]
        resp["database"] = "✅ Connected & Working"
        resp["connection_status"] = "Connected"
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        resp["database"] = f"⚠️ Connected but error: {str(e)[:80]}"
    return resp


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
