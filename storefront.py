"""
Storefront client.

Local cart / wishlist / catalog state for a shopper's session plus the HTTP
client that talks to the API.

Sync contract: once signed in, the server owns the cart and wishlist. Every
mutation is applied locally first, sent to the server, and the local store
is then replaced with the collection the server returns. If the request
fails the local store is rolled back to what it was before the mutation and
the error is raised to the caller. Nothing is retried. Signed out, the
stores are purely local and are not persisted between sessions.
"""
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import BaseModel

import config
import pricing

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


class NotSignedIn(ApiError):
    def __init__(self):
        super().__init__(401, "Sign in required")


class ChangeNotifier:
    def __init__(self):
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener()


# Line models

class CartLine(BaseModel):
    id: str
    name: str = ""
    price: float = 0.0
    discount_price: float = 0.0
    quantity: int = 1
    image: Optional[str] = None

    @property
    def effective_price(self) -> float:
        return pricing.effective_price(self.price, self.discount_price)

    @property
    def total_price(self) -> float:
        return self.effective_price * self.quantity


class WishlistLine(BaseModel):
    id: str
    name: str = ""
    price: float = 0.0
    discount_price: float = 0.0
    image: Optional[str] = None

    @property
    def effective_price(self) -> float:
        return pricing.effective_price(self.price, self.discount_price)


def product_id(product: Dict[str, Any]) -> str:
    return str(product.get("id") or product.get("_id") or product.get("productId")
               or product.get("productName") or "")


def cart_line(product: Dict[str, Any], quantity: int = 1) -> CartLine:
    """Build a cart line from a catalog product card."""
    return CartLine(
        id=product_id(product),
        name=str(product.get("productName") or ""),
        price=pricing.parse_price(product.get("price")),
        discount_price=pricing.parse_price(product.get("discountPrice")),
        quantity=quantity,
        image=product.get("imageAsset") or product.get("image"),
    )


def wishlist_line(product: Dict[str, Any]) -> WishlistLine:
    line = cart_line(product)
    return WishlistLine(id=line.id, name=line.name, price=line.price,
                        discount_price=line.discount_price, image=line.image)


# Stores

class CartStore(ChangeNotifier):
    def __init__(self):
        super().__init__()
        self._items: List[CartLine] = []

    @property
    def items(self) -> List[CartLine]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[CartLine]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add_item(self, item: CartLine) -> None:
        existing = self.get(item.id)
        if existing:
            existing.quantity += item.quantity
        else:
            self._items.append(item.model_copy())
        self.notify_listeners()

    def remove_item(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]
        self.notify_listeners()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(item_id)
            return
        item = self.get(item_id)
        if item is None:
            raise KeyError(item_id)
        item.quantity = quantity
        self.notify_listeners()

    def clear(self) -> None:
        self._items = []
        self.notify_listeners()

    def snapshot(self) -> List[CartLine]:
        return [item.model_copy() for item in self._items]

    def restore(self, items: List[CartLine]) -> None:
        self._items = items
        self.notify_listeners()

    def replace_from_server(self, items: List[Dict[str, Any]]) -> None:
        """Take the server's cart as truth, keeping local display details."""
        lines = []
        for item in items:
            local = self.get(str(item.get("productId")))
            server_price = float(item.get("price") or 0)
            if local and local.effective_price == server_price:
                line = local.model_copy(update={"quantity": int(item.get("quantity") or 0)})
            else:
                line = CartLine(
                    id=str(item.get("productId")),
                    name=item.get("productName") or (local.name if local else ""),
                    price=server_price,
                    quantity=int(item.get("quantity") or 0),
                    image=local.image if local else None,
                )
            lines.append(line)
        self._items = lines
        self.notify_listeners()

    @property
    def count(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> float:
        return sum((item.total_price for item in self._items), 0.0)

    @property
    def total_with_tax(self) -> float:
        return self.subtotal + pricing.calculate_tax(self.subtotal, pricing.TAX_RATE)

    @property
    def total_discount(self) -> float:
        return sum(((item.price - item.effective_price) * item.quantity for item in self._items), 0.0)

    @property
    def gst_amount(self) -> float:
        return pricing.calculate_tax(self.subtotal, pricing.GST_RATE)

    @property
    def final_total(self) -> float:
        return self.subtotal + self.gst_amount

    @property
    def final_total_with_shipping(self) -> float:
        return pricing.apply_shipping(self.total_with_tax, pricing.SHIPPING_FEE)


class WishlistStore(ChangeNotifier):
    def __init__(self):
        super().__init__()
        self._items: List[WishlistLine] = []

    @property
    def items(self) -> List[WishlistLine]:
        return list(self._items)

    def contains(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self._items)

    def add_item(self, item: WishlistLine) -> None:
        if not self.contains(item.id):
            self._items.append(item.model_copy())
            self.notify_listeners()

    def remove_item(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]
        self.notify_listeners()

    def clear(self) -> None:
        self._items = []
        self.notify_listeners()

    def snapshot(self) -> List[WishlistLine]:
        return [item.model_copy() for item in self._items]

    def restore(self, items: List[WishlistLine]) -> None:
        self._items = items
        self.notify_listeners()

    def replace_from_server(self, items: List[Dict[str, Any]]) -> None:
        local = {item.id: item for item in self._items}
        lines = []
        for item in items:
            item_id = str(item.get("productId"))
            if item_id in local:
                lines.append(local[item_id])
            else:
                lines.append(WishlistLine(id=item_id, name=item.get("productName") or "",
                                          price=float(item.get("productPrice") or 0)))
        self._items = lines
        self.notify_listeners()


class CatalogState(ChangeNotifier):
    """Products of the current tenant and the search box that filters them."""

    def __init__(self):
        super().__init__()
        self.products: List[Dict[str, Any]] = []
        self.is_loading = True
        self.error: Optional[str] = None
        self.query = ""

    def loaded(self, products: List[Dict[str, Any]]) -> None:
        self.products = list(products)
        self.is_loading = False
        self.error = None
        self.notify_listeners()

    def failed(self, message: str) -> None:
        self.is_loading = False
        self.error = message
        self.notify_listeners()

    def set_query(self, query: str) -> None:
        self.query = query
        self.notify_listeners()

    @property
    def visible(self) -> List[Dict[str, Any]]:
        if not self.query:
            return list(self.products)
        needle = self.query.lower()
        fields = ("productName", "price", "discountPrice")
        return [p for p in self.products
                if any(needle in str(p.get(f) or "").lower() for f in fields)]


# HTTP

class StorefrontClient:
    """One method per API endpoint. Returns the envelope's `data`."""

    def __init__(self, base_url: str = None, admin_object_id: str = None, session=None, timeout: float = 10):
        self.base_url = (base_url or config.STOREFRONT_BASE_URL).rstrip("/")
        self.admin_object_id = admin_object_id or config.DEFAULT_ADMIN_ID
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None

    def _request(self, method: str, path: str, body: dict = None, auth: bool = False,
                 params: dict = None) -> dict:
        headers = {}
        if auth:
            if not self.token:
                raise NotSignedIn()
            headers["Authorization"] = f"Bearer {self.token}"
        resp = self.session.request(method, self.base_url + path, json=body, params=params,
                                    headers=headers, timeout=self.timeout)
        try:
            payload = resp.json()
        except ValueError:
            raise ApiError(resp.status_code, resp.text or "Invalid response")
        if resp.status_code >= 400 or not payload.get("success", False):
            message = payload.get("error") or "Request failed"
            logger.warning("%s %s failed: %s %s", method, path, resp.status_code, message)
            raise ApiError(resp.status_code, message)
        return payload

    def _data(self, method: str, path: str, body: dict = None, auth: bool = False, params: dict = None):
        return self._request(method, path, body, auth, params).get("data")

    # catalog

    def app_config(self) -> dict:
        return self._data("GET", f"/api/app-config/{self.admin_object_id}")

    def feature_flags(self) -> dict:
        return self._data("GET", "/api/app-config")

    def screen_config(self, screen: str = None) -> dict:
        params = {"adminObjectId": self.admin_object_id}
        if screen:
            params["screen"] = screen
        return self._data("GET", "/api/get-screen-config", params=params)

    def products(self) -> List[dict]:
        return self._data("GET", f"/api/products/{self.admin_object_id}") or []

    def search_products(self, query: str) -> List[dict]:
        return self._data("GET", f"/api/products/search/{self.admin_object_id}/{quote(query, safe='')}") or []

    # accounts

    def register(self, first_name: str, last_name: str, email: str, password: str, phone: str,
                 country_code: str = None) -> dict:
        body = {
            "adminObjectId": self.admin_object_id,
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
            "phone": phone,
        }
        if country_code:
            body["countryCode"] = country_code
        data = self._data("POST", "/api/users/register", body)
        self.token = data["token"]
        return data

    def login(self, email: str, password: str) -> dict:
        data = self._data("POST", "/api/users/login", {
            "adminObjectId": self.admin_object_id,
            "email": email,
            "password": password,
        })
        self.token = data["token"]
        return data

    def check(self, email: str) -> bool:
        payload = self._request("POST", "/api/users/check",
                                {"adminObjectId": self.admin_object_id, "email": email})
        return bool(payload.get("exists"))

    def logout(self) -> None:
        self.token = None

    def profile(self) -> dict:
        return self._data("GET", "/api/users/profile", auth=True)

    # cart, wishlist, orders

    def cart(self) -> List[dict]:
        return self._data("GET", "/api/users/cart", auth=True)

    def add_to_cart(self, product_id: str, product_name: str, price: float, quantity: int = 1) -> List[dict]:
        return self._data("POST", "/api/users/cart", {
            "productId": product_id,
            "productName": product_name,
            "price": price,
            "quantity": quantity,
        }, auth=True)

    def update_cart_quantity(self, product_id: str, quantity: int) -> List[dict]:
        return self._data("PUT", f"/api/users/cart/{quote(product_id, safe='')}", {"quantity": quantity}, auth=True)

    def remove_from_cart(self, product_id: str) -> List[dict]:
        return self._data("DELETE", f"/api/users/cart/{quote(product_id, safe='')}", auth=True)

    def wishlist(self) -> List[dict]:
        return self._data("GET", "/api/users/wishlist", auth=True)

    def add_to_wishlist(self, product_id: str, product_name: str, product_price: float) -> List[dict]:
        return self._data("POST", "/api/users/wishlist", {
            "productId": product_id,
            "productName": product_name,
            "productPrice": product_price,
        }, auth=True)

    def remove_from_wishlist(self, product_id: str) -> List[dict]:
        return self._data("DELETE", f"/api/users/wishlist/{quote(product_id, safe='')}", auth=True)

    def place_order(self) -> dict:
        return self._data("POST", "/api/users/orders", auth=True)

    def orders(self) -> List[dict]:
        return self._data("GET", "/api/users/orders", auth=True)


class Storefront:
    """A shopper's session: local stores kept in step with the API."""

    def __init__(self, client: StorefrontClient):
        self.client = client
        self.cart = CartStore()
        self.wishlist = WishlistStore()
        self.catalog = CatalogState()
        self.app_name: Optional[str] = None
        self.user: Optional[dict] = None

    @property
    def signed_in(self) -> bool:
        return self.client.token is not None

    def load(self) -> None:
        """Splash-screen work: app name and product list."""
        try:
            config_data = self.client.app_config()
            self.app_name = config_data.get("appName") or config_data.get("shopName")
        except (ApiError, requests.RequestException) as e:
            logger.warning("Could not load app config: %s", e)
            self.app_name = "AppifyYours"
        self.load_products()

    def load_products(self) -> None:
        try:
            self.catalog.loaded(self.client.products())
        except (ApiError, requests.RequestException) as e:
            logger.warning("Could not load products: %s", e)
            self.catalog.failed(str(e))

    def search(self, query: str) -> List[Dict[str, Any]]:
        self.catalog.set_query(query)
        return self.catalog.visible

    def sign_in(self, email: str, password: str) -> dict:
        self.user = self.client.login(email, password)
        self.sync()
        return self.user

    def sign_up(self, first_name: str, last_name: str, email: str, password: str, phone: str) -> dict:
        self.user = self.client.register(first_name, last_name, email, password, phone)
        self.sync()
        return self.user

    def sign_out(self) -> None:
        self.client.logout()
        self.user = None
        self.cart.clear()
        self.wishlist.clear()

    def sync(self) -> None:
        """Pull the server's cart and wishlist."""
        self.cart.replace_from_server(self.client.cart())
        self.wishlist.replace_from_server(self.client.wishlist())

    def _apply(self, store, mutate: Callable[[], None], remote: Callable[[], List[dict]]) -> None:
        before = store.snapshot()
        mutate()
        if not self.signed_in:
            return
        try:
            server_items = remote()
        except Exception:
            store.restore(before)
            raise
        store.replace_from_server(server_items)

    def add_to_cart(self, product: Dict[str, Any], quantity: int = 1) -> None:
        line = cart_line(product, quantity)
        self._apply(
            self.cart,
            lambda: self.cart.add_item(line),
            lambda: self.client.add_to_cart(line.id, line.name, line.effective_price, quantity),
        )

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_cart(item_id)
            return
        self._apply(
            self.cart,
            lambda: self.cart.update_quantity(item_id, quantity),
            lambda: self.client.update_cart_quantity(item_id, quantity),
        )

    def remove_from_cart(self, item_id: str) -> None:
        self._apply(
            self.cart,
            lambda: self.cart.remove_item(item_id),
            lambda: self.client.remove_from_cart(item_id),
        )

    def add_to_wishlist(self, product: Dict[str, Any]) -> None:
        line = wishlist_line(product)
        self._apply(
            self.wishlist,
            lambda: self.wishlist.add_item(line),
            lambda: self.client.add_to_wishlist(line.id, line.name, line.effective_price),
        )

    def remove_from_wishlist(self, item_id: str) -> None:
        self._apply(
            self.wishlist,
            lambda: self.wishlist.remove_item(item_id),
            lambda: self.client.remove_from_wishlist(item_id),
        )

    def checkout(self) -> dict:
        if not self.signed_in:
            raise NotSignedIn()
        order = self.client.place_order()
        self.cart.clear()
        return order
