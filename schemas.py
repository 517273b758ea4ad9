"""
Database Schemas for the storefront

Each Pydantic model mirrors a MongoDB document. Python attributes are
snake_case; the stored and wire keys are camelCase (see `Document`).

- Account -> "users_create_account"
- ScreenConfig -> "adminelementscreens".screenConfig (the rest of that
  document is read as stored)

Line items (cart, wishlist, purchase history) are embedded in the account.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

import config


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


# Line items

class CartItem(Document):
    product_id: str = Field(..., description="Product reference")
    product_name: Optional[str] = Field(None, description="Display name")
    price: float = Field(0, ge=0, description="Unit price snapshot")
    quantity: int = Field(1, ge=1, description="Units in the cart")
    added_at: Optional[datetime] = None


class WishlistItem(Document):
    product_id: str
    product_name: Optional[str] = None
    product_price: float = Field(0, ge=0)
    added_at: Optional[datetime] = None


class PurchaseItem(Document):
    product_id: str
    product_name: Optional[str] = None
    price: float = 0
    quantity: int = 1
    purchase_date: Optional[datetime] = None


class Order(Document):
    """Result of draining a cart. Not stored on its own."""
    order_id: str
    items: List[PurchaseItem]
    total: float


# Accounts

class Account(Document):
    """End user of one storefront (tenant)"""
    admin_object_id: ObjectId = Field(..., description="Tenant scope")
    first_name: str
    last_name: str
    full_name: Optional[str] = None
    email: str = Field(..., description="Lower-cased, unique per tenant")
    password: str = Field(..., description="bcrypt hash")
    phone: str = ""
    country_code: str = config.DEFAULT_COUNTRY_CODE
    purchase_history: List[PurchaseItem] = Field(default_factory=list)
    wishlist: List[WishlistItem] = Field(default_factory=list)
    cart: List[CartItem] = Field(default_factory=list)


# Tenant configuration

class InputField(Document):
    type: Literal["text", "email", "phone", "password"]
    label: str
    key: str
    required: bool = False


class ButtonField(Document):
    type: Literal["button"]
    label: str


ScreenField = Annotated[Union[InputField, ButtonField], Field(discriminator="type")]


class ScreenConfig(Document):
    screen_name: str = "form_screen"
    fields: List[ScreenField] = Field(default_factory=list)


def default_screen_config(screen: Optional[str] = None) -> ScreenConfig:
    return ScreenConfig(
        screen_name=screen or "form_screen",
        fields=[
            InputField(type="text", label="First Name", key="firstName", required=True),
            InputField(type="text", label="Last Name", key="lastName", required=True),
            InputField(type="email", label="Email", key="email", required=True),
            InputField(type="phone", label="Phone", key="phone", required=True),
            InputField(type="password", label="Password", key="password", required=True),
            ButtonField(type="button", label="Create Account"),
        ],
    )


# Request bodies. Fields are optional so missing values surface as our own
# ValidationError messages instead of framework errors.

class RegisterRequest(Document):
    admin_object_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    country_code: Optional[str] = None


class CreateUserRequest(RegisterRequest):
    full_name: Optional[str] = None


class LoginRequest(Document):
    admin_object_id: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class CheckRequest(Document):
    admin_object_id: Optional[str] = None
    email: Optional[str] = None


class AddToCartRequest(Document):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    price: float = Field(0, ge=0)
    quantity: Optional[int] = Field(None, ge=1)


class UpdateQuantityRequest(Document):
    quantity: int = Field(..., ge=0)


class AddToWishlistRequest(Document):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    product_price: float = Field(0, ge=0)
