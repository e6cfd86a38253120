from pydantic import BaseModel, Field
from typing import Annotated, Optional, List, Dict, Literal, Union
from datetime import datetime
from decimal import Decimal


class RecentOrder(BaseModel):
    id: str
    total_amount: Decimal
    status: str
    created_at: Optional[datetime] = None


class AdminDashboard(BaseModel):
    role: Literal["admin"] = "admin"
    total_users: int
    total_products: int
    total_orders: int
    total_revenue: Decimal
    pending_kyc: int
    total_groups: int
    products_by_category: Dict[str, int]


class VendorDashboard(BaseModel):
    role: Literal["vendor"] = "vendor"
    total_products: int
    active_products: int
    kyc_status: Optional[str] = None
    groups_for_products: int
    paid_group_items: int
    group_revenue: Decimal


class UserDashboard(BaseModel):
    role: Literal["user"] = "user"
    cart_items: int
    total_orders: int
    groups_joined: int
    pending_payments: int
    recent_orders: List[RecentOrder]


Dashboard = Annotated[
    Union[AdminDashboard, VendorDashboard, UserDashboard],
    Field(discriminator="role")
]
