import pytest

from conftest import PASSWORD, PRODUCTS
from storefront import (
    ApiError,
    CartLine,
    CartStore,
    CatalogState,
    NotSignedIn,
    Storefront,
    StorefrontClient,
    WishlistLine,
    WishlistStore,
    cart_line,
)


class TestCartStore:
    def test_add_merges_by_id(self):
        cart = CartStore()
        cart.add_item(CartLine(id="a", name="A", price=10, quantity=2))
        cart.add_item(CartLine(id="a", name="A", price=10, quantity=3))
        assert [(i.id, i.quantity) for i in cart.items] == [("a", 5)]

    def test_totals(self):
        cart = CartStore()
        cart.add_item(CartLine(id="a", price=10, quantity=2))
        cart.add_item(CartLine(id="b", price=5, quantity=1))
        assert cart.subtotal == 25
        assert cart.gst_amount == pytest.approx(4.5)
        assert cart.final_total == pytest.approx(29.5)
        assert cart.total_with_tax == pytest.approx(27)
        assert cart.final_total_with_shipping == pytest.approx(27 + 5.99)
        assert cart.count == 3

    def test_discount_price_wins(self):
        cart = CartStore()
        cart.add_item(CartLine(id="a", price=20, discount_price=15, quantity=2))
        assert cart.subtotal == 30
        assert cart.total_discount == 10

    def test_free_shipping_over_threshold(self):
        cart = CartStore()
        cart.add_item(CartLine(id="a", price=100))
        assert cart.final_total_with_shipping == pytest.approx(108)

    def test_zero_quantity_removes(self):
        cart = CartStore()
        cart.add_item(CartLine(id="a", price=1))
        cart.update_quantity("a", 0)
        assert cart.items == []

    def test_update_unknown_line(self):
        with pytest.raises(KeyError):
            CartStore().update_quantity("a", 2)

    def test_notifies_listeners(self):
        cart = CartStore()
        calls = []
        cart.add_listener(lambda: calls.append(len(cart.items)))
        cart.add_item(CartLine(id="a", price=1))
        cart.remove_item("a")
        assert calls == [1, 0]

    def test_items_are_copies(self):
        cart = CartStore()
        line = CartLine(id="a", price=1)
        cart.add_item(line)
        cart.add_item(line)
        assert line.quantity == 1
        assert cart.items[0].quantity == 2


class TestWishlistStore:
    def test_add_is_idempotent(self):
        wishlist = WishlistStore()
        wishlist.add_item(WishlistLine(id="a", price=3))
        wishlist.add_item(WishlistLine(id="a", price=3))
        assert len(wishlist.items) == 1
        assert wishlist.contains("a")

    def test_remove_absent(self):
        wishlist = WishlistStore()
        wishlist.remove_item("a")
        assert wishlist.items == []


class TestCatalogState:
    def test_starts_loading(self):
        assert CatalogState().is_loading is True

    def test_filters_on_name_and_prices(self):
        catalog = CatalogState()
        catalog.loaded(PRODUCTS)
        catalog.set_query("red")
        assert [p["productName"] for p in catalog.visible] == ["Red Shirt"]
        catalog.set_query("15.00")
        assert [p["productName"] for p in catalog.visible] == ["Red Shirt"]
        catalog.set_query("")
        assert len(catalog.visible) == len(PRODUCTS)

    def test_failed(self):
        catalog = CatalogState()
        catalog.failed("offline")
        assert catalog.is_loading is False
        assert catalog.error == "offline"


def test_cart_line_from_product():
    line = cart_line(PRODUCTS[0])
    assert line.id == "Red Shirt"
    assert line.price == 20
    assert line.discount_price == 15
    assert line.effective_price == 15


@pytest.fixture
def shop(client, tenant_id):
    return Storefront(StorefrontClient(base_url="http://testserver", admin_object_id=tenant_id, session=client))


@pytest.fixture
def signed_up(shop):
    shop.sign_up("Ada", "Lovelace", "ada@mail.com", PASSWORD, "5550100")
    return shop


class TestStorefront:
    def test_load(self, shop):
        shop.load()
        assert shop.app_name == "Phone Shop"
        assert shop.catalog.is_loading is False
        assert len(shop.catalog.products) == len(PRODUCTS)

    def test_load_unknown_tenant(self, client):
        shop = Storefront(StorefrontClient(base_url="http://testserver",
                                           admin_object_id="0" * 24, session=client))
        shop.load()
        assert shop.app_name == "AppifyYours"
        assert shop.catalog.error

    def test_server_search(self, shop):
        found = shop.client.search_products("red")
        assert [p["productName"] for p in found] == ["Red Shirt", "Blue Jeans", "Scarf"]

    def test_server_search_with_slash(self, shop):
        assert shop.client.search_products("shirt/tee") == []

    def test_signed_out_is_local_only(self, shop):
        shop.add_to_cart(PRODUCTS[0])
        assert len(shop.cart.items) == 1
        with pytest.raises(NotSignedIn):
            shop.checkout()

    def test_cart_follows_server(self, signed_up):
        signed_up.add_to_cart(PRODUCTS[0], quantity=2)
        signed_up.add_to_cart(PRODUCTS[0])
        server = signed_up.client.cart()
        assert [(i["productId"], i["quantity"], i["price"]) for i in server] == [("Red Shirt", 3, 15.0)]
        line = signed_up.cart.items[0]
        assert line.quantity == 3
        assert line.discount_price == 15

    def test_update_and_remove(self, signed_up):
        signed_up.add_to_cart(PRODUCTS[1])
        signed_up.update_quantity("Blue Jeans", 4)
        assert signed_up.client.cart()[0]["quantity"] == 4
        signed_up.update_quantity("Blue Jeans", 0)
        assert signed_up.client.cart() == []
        assert signed_up.cart.items == []

    def test_failed_call_rolls_back(self, signed_up):
        signed_up.add_to_cart(PRODUCTS[2])
        signed_up.client.token = "garbage"
        with pytest.raises(ApiError) as exc:
            signed_up.add_to_cart(PRODUCTS[3])
        assert exc.value.status == 403
        assert [i.id for i in signed_up.cart.items] == ["Green Hat"]

    def test_wishlist(self, signed_up):
        signed_up.add_to_wishlist(PRODUCTS[0])
        signed_up.add_to_wishlist(PRODUCTS[0])
        assert len(signed_up.client.wishlist()) == 1
        signed_up.remove_from_wishlist("Red Shirt")
        assert signed_up.wishlist.items == []

    def test_checkout(self, signed_up):
        signed_up.add_to_cart(PRODUCTS[2], quantity=2)
        order = signed_up.checkout()
        assert order["orderId"].startswith("ORDER_")
        assert order["total"] == 20
        assert signed_up.cart.items == []
        assert len(signed_up.client.orders()) == 1

    def test_checkout_empty(self, signed_up):
        with pytest.raises(ApiError) as exc:
            signed_up.checkout()
        assert exc.value.message == "Cart is empty"

    def test_sign_in_pulls_server_state(self, shop, client, tenant_id):
        shop.sign_up("Ada", "Lovelace", "ada@mail.com", PASSWORD, "5550100")
        shop.add_to_cart(PRODUCTS[3])
        shop.sign_out()
        assert shop.cart.items == []

        shop.sign_in("ada@mail.com", PASSWORD)
        assert [i.id for i in shop.cart.items] == ["Scarf"]
        assert shop.client.profile()["email"] == "ada@mail.com"

    def test_wrong_password(self, shop):
        shop.sign_up("Ada", "Lovelace", "ada@mail.com", PASSWORD, "5550100")
        shop.sign_out()
        with pytest.raises(ApiError) as exc:
            shop.sign_in("ada@mail.com", "nope")
        assert exc.value.status == 401

    def test_check_and_screen_config(self, signed_up):
        assert signed_up.client.check("ada@mail.com") is True
        assert signed_up.client.check("bob@mail.com") is False
        assert signed_up.client.screen_config()["screenName"] == "form_screen"
