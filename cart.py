"""
Cart, wishlist and order aggregation on a stored account.

The `*_item` helpers mutate plain lists of line-item dicts and are shared by
the persisted operations below. Each persisted operation is one read and one
write of the account document; concurrent writers on the same account are
last-write-wins.
"""
import logging
import time
from typing import List, Optional

from pymongo.database import Database

from accounts import get_account, touch
from auth import Identity
from database import now
from errors import EmptyCart, NotFound, ValidationError
from schemas import AddToCartRequest, AddToWishlistRequest, CartItem, Order, PurchaseItem, WishlistItem

logger = logging.getLogger(__name__)


def _find(items: List[dict], product_id: str) -> Optional[dict]:
    for item in items:
        if item.get("productId") == product_id:
            return item
    return None


def add_cart_item(items: List[dict], product_id: str, product_name: Optional[str], price: float,
                  quantity: int = 1) -> List[dict]:
    existing = _find(items, product_id)
    if existing:
        existing["quantity"] = existing.get("quantity", 0) + quantity
    else:
        line = CartItem(product_id=product_id, product_name=product_name, price=price,
                        quantity=quantity, added_at=now())
        items.append(line.model_dump(by_alias=True))
    return items


def remove_item(items: List[dict], product_id: str) -> List[dict]:
    return [item for item in items if item.get("productId") != product_id]


def set_cart_quantity(items: List[dict], product_id: str, quantity: int) -> List[dict]:
    existing = _find(items, product_id)
    if not existing:
        raise NotFound("Item not in cart")
    existing["quantity"] = quantity
    return items


def add_wishlist_item(items: List[dict], product_id: str, product_name: Optional[str],
                      product_price: float) -> bool:
    """Append unless already present. Returns whether anything changed."""
    if _find(items, product_id):
        return False
    line = WishlistItem(product_id=product_id, product_name=product_name,
                        product_price=product_price, added_at=now())
    items.append(line.model_dump(by_alias=True))
    return True


def cart_total(items: List[dict]) -> float:
    return sum(item.get("price", 0) * item.get("quantity", 0) for item in items)


def new_order_id() -> str:
    return "ORDER_" + str(int(time.time() * 1000))


def drain_cart(cart: List[dict]) -> Order:
    """Turn cart lines into purchase lines. Does not touch the cart itself."""
    if not cart:
        raise EmptyCart()
    purchased_at = now()
    items = [
        PurchaseItem(
            product_id=item["productId"],
            product_name=item.get("productName"),
            price=item.get("price", 0),
            quantity=item.get("quantity", 0),
            purchase_date=purchased_at,
        )
        for item in cart
    ]
    return Order(order_id=new_order_id(), items=items, total=cart_total(cart))


# Persisted operations

def get_cart(database: Database, identity: Identity) -> List[dict]:
    return get_account(database, identity).get("cart", [])


def add_to_cart(database: Database, identity: Identity, payload: AddToCartRequest) -> List[dict]:
    if not payload.product_id:
        raise ValidationError("productId is required")
    account = get_account(database, identity)
    cart = add_cart_item(account.get("cart", []), payload.product_id, payload.product_name,
                         payload.price, payload.quantity or 1)
    touch(database, account, cart=cart)
    return cart


def remove_from_cart(database: Database, identity: Identity, product_id: str) -> List[dict]:
    account = get_account(database, identity)
    cart = remove_item(account.get("cart", []), product_id)
    touch(database, account, cart=cart)
    return cart


def update_quantity(database: Database, identity: Identity, product_id: str, quantity: int) -> List[dict]:
    account = get_account(database, identity)
    cart = set_cart_quantity(account.get("cart", []), product_id, quantity)
    touch(database, account, cart=cart)
    return cart


def get_wishlist(database: Database, identity: Identity) -> List[dict]:
    return get_account(database, identity).get("wishlist", [])


def add_to_wishlist(database: Database, identity: Identity, payload: AddToWishlistRequest) -> List[dict]:
    if not payload.product_id:
        raise ValidationError("productId is required")
    account = get_account(database, identity)
    wishlist = account.get("wishlist", [])
    if add_wishlist_item(wishlist, payload.product_id, payload.product_name, payload.product_price):
        touch(database, account, wishlist=wishlist)
    return wishlist


def remove_from_wishlist(database: Database, identity: Identity, product_id: str) -> List[dict]:
    account = get_account(database, identity)
    wishlist = account.get("wishlist", [])
    remaining = remove_item(wishlist, product_id)
    if len(remaining) != len(wishlist):
        touch(database, account, wishlist=remaining)
    return remaining


def place_order(database: Database, identity: Identity) -> Order:
    account = get_account(database, identity)
    order = drain_cart(account.get("cart", []))
    history = account.get("purchaseHistory", [])
    history.extend(item.model_dump(by_alias=True) for item in order.items)
    touch(database, account, purchaseHistory=history, cart=[])
    logger.info("Order %s placed by %s: %d items, total %.2f",
                order.order_id, identity.user_id, len(order.items), order.total)
    return order


def get_orders(database: Database, identity: Identity) -> List[dict]:
    return get_account(database, identity).get("purchaseHistory", [])
