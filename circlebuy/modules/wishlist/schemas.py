from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from circlebuy.modules.cart.schemas import CartProduct


class WishlistAdd(BaseModel):
    product_id: str


class WishlistItemResponse(BaseModel):
    id: str
    product_id: str
    added_at: Optional[datetime] = None
    product: Optional[CartProduct] = None


class WishlistResponse(BaseModel):
    items: List[WishlistItemResponse]
    count: int
