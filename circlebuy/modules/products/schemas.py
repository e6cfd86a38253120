from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = None
    stock_quantity: int = Field(default=0, ge=0)
    group_order_enabled: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    group_order_enabled: Optional[bool] = None


class ProductActiveUpdate(BaseModel):
    is_active: bool


class ProductResponse(BaseModel):
    id: str
    vendor_id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    category: Optional[str] = None
    stock_quantity: int = 0
    is_active: bool = True
    group_order_enabled: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiscountTierIn(BaseModel):
    members_required: int = Field(ge=1)
    discount_percentage: Decimal = Field(ge=0, le=100)


class DiscountTiersUpdate(BaseModel):
    tiers: List[DiscountTierIn]

    @field_validator("tiers")
    @classmethod
    def unique_thresholds(cls, tiers: List[DiscountTierIn]) -> List[DiscountTierIn]:
        thresholds = [t.members_required for t in tiers]
        if len(thresholds) != len(set(thresholds)):
            raise ValueError("Each tier must have a distinct members_required")
        return tiers


class DiscountTierResponse(BaseModel):
    tier_number: int
    members_required: int
    discount_percentage: Decimal


class ProductWithTiersResponse(ProductResponse):
    discount_tiers: List[DiscountTierResponse]
    uses_default_tiers: bool
