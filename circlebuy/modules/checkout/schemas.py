from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from datetime import datetime
from decimal import Decimal


class ShippingAddress(BaseModel):
    full_name: str = Field(min_length=1, max_length=120)
    line1: str = Field(min_length=1)
    line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: Optional[str] = None
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(default="IN", min_length=2, max_length=2)
    phone: Optional[str] = None


class CheckoutStart(BaseModel):
    quantity: int = Field(default=1, ge=1, le=100)


class PaymentResult(BaseModel):
    status: Literal["paid", "failed"]
    payment_reference: Optional[str] = Field(default=None, max_length=200)


class CheckoutItemResponse(BaseModel):
    id: str
    session_id: str
    group_id: str
    user_id: str
    product_id: str
    quantity: int = 1
    unit_price: Decimal
    total_price: Decimal
    shipping_address: Optional[ShippingAddress] = None
    payment_status: str
    payment_reference: Optional[str] = None
    updated_at: Optional[datetime] = None


class CheckoutSessionResponse(BaseModel):
    id: str
    group_id: str
    product_id: str
    created_by: str
    member_count: int
    quantity: int = 1
    discount_percentage: Decimal
    unit_price: Decimal
    status: str
    created_at: Optional[datetime] = None
    items: List[CheckoutItemResponse] = []
    totals_by_status: Dict[str, Decimal] = {}
    failed_user_ids: List[str] = []
