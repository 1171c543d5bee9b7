# zomatify/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Literal
from decimal import Decimal
from datetime import date, datetime

from zomatify.utils.settings import DEFAULT_CURRENCY

OrderStatus = Literal["pending", "accepted", "preparing", "ready", "completed", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
PaymentMethod = Literal["cod", "razorpay"]
OrderType = Literal["delivery", "pickup"]


# menu / cart

class MenuItemOption(BaseModel):
    """Add-on option selectable for a menu item."""

    id: str
    name: str
    price: Decimal


class MenuItem(BaseModel):
    """Menu item as listed by a vendor."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    price: Decimal
    description: str = ""
    category: str | None = None
    image_url: str | None = None
    available: bool = True
    preparation_time: int | None = None
    tags: List[str] = Field(default_factory=list)


class CartItem(BaseModel):
    """Menu item selected into the cart, with quantity and extras."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    menu_item: MenuItem = Field(..., alias="menuItem")
    quantity: int
    special_instructions: str | None = Field(None, alias="specialInstructions")
    selected_options: List[MenuItemOption] | None = Field(None, alias="selectedOptions")

    @property
    def unit_price(self) -> Decimal:
        options = sum((o.price for o in self.selected_options or []), Decimal("0"))
        return self.menu_item.price + options

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class CartState(BaseModel):
    """Cart snapshot; serialized with aliases for storage."""

    model_config = ConfigDict(populate_by_name=True)

    items: List[CartItem] = Field(default_factory=list)
    total_price: Decimal = Field(Decimal("0"), alias="totalPrice")
    total_items: int = Field(0, alias="totalItems")


# auth / profiles

class AuthUser(BaseModel):
    """Identity as returned by the auth platform."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    phone: str | None = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    user: AuthUser


class Profile(BaseModel):
    """Application-level user record (row of the profiles table)."""

    model_config = ConfigDict(extra="allow")

    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone_number: str | None = ""
    role: Literal["customer", "shopkeeper", "admin"] = "customer"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthState(BaseModel):
    user: AuthUser | None = None
    profile: Profile | None = None
    session: AuthSession | None = None
    loading: bool = True
    error: str | None = None


class AuthResult(BaseModel):
    success: bool
    error: str | None = None


# payments

class PaymentOrderIn(BaseModel):
    """Request to create a gateway order; amount is validated by the service."""

    model_config = ConfigDict(populate_by_name=True)

    amount: Any = None
    order_reference: str | None = Field(None, alias="orderReference")
    currency: str = DEFAULT_CURRENCY
    notes: Dict[str, Any] = Field(default_factory=dict)


class PaymentOrderOut(BaseModel):
    id: str
    amount: int
    currency: str
    status: str


class VerifyPaymentIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_id: str | None = Field(None, alias="paymentId")
    order_id: str | None = Field(None, alias="orderId")
    signature: str | None = None


class VerifyPaymentOut(BaseModel):
    verified: bool


class PaymentConfirmation(BaseModel):
    """Result handed back by the gateway's hosted checkout."""

    payment_id: str
    order_id: str
    signature: str


class RefundIn(BaseModel):
    """Refund request; amount is in paise and defaults to the captured amount."""

    model_config = ConfigDict(populate_by_name=True)

    payment_id: str | None = Field(None, alias="paymentId")
    order_id: str | None = Field(None, alias="orderId")
    amount: int | None = Field(None, gt=0)
    reason: str = "Order cancelled by vendor"


class RefundOut(BaseModel):
    id: str
    amount: Decimal
    status: str
    order_id: str
    payment_id: str


class RefundEnvelope(BaseModel):
    success: bool = True
    refund: RefundOut
    message: str = "Refund processed successfully"


class DebugCredentialsOut(BaseModel):
    key_id_present: bool
    key_secret_present: bool
    key_id_length: int
    key_secret_length: int
    key_id_preview: str
    key_secret_preview: str
    key_id_starts_with_test: bool
    environment: str
    timestamp: datetime


# orders

class DeliveryAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName", min_length=1)
    phone: str = Field(..., min_length=1)
    address_line1: str = Field(..., alias="addressLine1", min_length=1)
    address_line2: str | None = Field(None, alias="addressLine2")
    landmark: str | None = None


class OrderItem(BaseModel):
    """Line of an order record, flattened from a cart item."""

    menu_item_id: str
    name: str
    price: Decimal
    quantity: int = Field(..., gt=0)
    special_instructions: str | None = None
    selected_options: List[MenuItemOption] | None = None


class OrderCreate(BaseModel):
    """Schema for creating an order record."""

    user_id: str = Field(..., min_length=1)
    vendor_id: str | None = None
    items: List[OrderItem] = Field(..., min_length=1)
    total_price: Decimal = Field(..., gt=0)
    status: OrderStatus = "pending"
    payment_status: PaymentStatus = "pending"
    payment_method: PaymentMethod = "cod"
    payment_id: str | None = None
    delivery_address: DeliveryAddress | None = None
    scheduled_for: datetime | None = None
    special_instructions: str | None = None
    group_order_id: str | None = None
    order_type: OrderType = "delivery"


class OrderPaymentUpdate(BaseModel):
    payment_id: str | None = None
    payment_status: PaymentStatus | None = None
    razorpay_order_id: str | None = None


class OrderGatewayLink(BaseModel):
    """Gateway order created for an order, recorded before the customer pays."""

    razorpay_order_id: str | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None


class OrderOut(BaseModel):
    """Schema for an order record (response)."""

    id: str
    user_id: str
    vendor_id: str | None = None
    items: List[Dict[str, Any]]
    total_price: Decimal
    status: str
    payment_status: str
    payment_method: str
    payment_id: str | None = None
    razorpay_order_id: str | None = None
    refund_id: str | None = None
    refund_amount: Decimal | None = None
    refund_reason: str | None = None
    delivery_address: Dict[str, Any] | None = None
    scheduled_for: datetime | None = None
    special_instructions: str | None = None
    group_order_id: str | None = None
    queue_position: int | None = None
    bill_number: int | None = None
    bill_date: date | None = None
    order_type: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderEnvelope(BaseModel):
    success: bool = True
    data: OrderOut


class OrderListEnvelope(BaseModel):
    success: bool = True
    data: List[OrderOut]
    count: int


# vendors

class VendorSettingsUpdate(BaseModel):
    is_accepting_orders: bool | None = None
    is_busy_mode: bool | None = None
    max_concurrent_orders: int | None = Field(None, ge=1)


class VendorSettingsOut(BaseModel):
    vendor_id: str
    is_accepting_orders: bool
    is_busy_mode: bool
    max_concurrent_orders: int
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CheckoutResult(BaseModel):
    success: bool
    order_id: str | None = None
    queue_position: int | None = None
    error: str | None = None


class HealthOut(BaseModel):
    status: str
    message: str
    timestamp: datetime
    environment: str
