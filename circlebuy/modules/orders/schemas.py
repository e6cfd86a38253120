from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal
from circlebuy.modules.checkout.schemas import ShippingAddress

OrderStatus = Literal["pending", "paid", "processing", "shipped", "delivered", "cancelled"]


class OrderCreate(BaseModel):
    shipping_address: ShippingAddress


class OrderStatusUpdate(BaseModel):
    # paid is reached through the payment result, never set by hand
    status: Literal["processing", "shipped", "delivered", "cancelled"]


class OrderItemResponse(BaseModel):
    id: str
    order_id: str
    product_id: str
    vendor_id: Optional[str] = None
    product_name: str
    product_image_url: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    payment_status: str
    payment_reference: Optional[str] = None
    subtotal_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    shipping_address: Optional[ShippingAddress] = None
    shipping_address_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
