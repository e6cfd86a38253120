from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class CartItemAdd(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1, le=100)


class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1, le=100)


class CartProduct(BaseModel):
    id: str
    name: str
    price: Decimal
    image_url: Optional[str] = None
    is_active: bool = True


class CartItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    created_at: Optional[datetime] = None
    product: Optional[CartProduct] = None
    line_total: Optional[Decimal] = None


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    subtotal: Decimal
    item_count: int
