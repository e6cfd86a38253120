from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from circlebuy.config import settings
from circlebuy.core.discounts import DiscountProgress
from circlebuy.modules.groups.membership import MembershipState
from circlebuy.modules.profiles.schemas import ProfileSummary


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    product_id: str
    is_private: bool = True
    invite_only: bool = False
    auto_approve_requests: bool = False
    member_limit: int = Field(default=settings.default_member_limit, ge=2, le=settings.max_member_limit)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    is_private: Optional[bool] = None
    invite_only: Optional[bool] = None
    auto_approve_requests: Optional[bool] = None
    member_limit: Optional[int] = Field(default=None, ge=2, le=settings.max_member_limit)


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    creator_id: str
    product_id: Optional[str] = None
    is_private: bool = True
    invite_only: bool = False
    auto_approve_requests: bool = False
    access_code: Optional[str] = None
    member_limit: Optional[int] = None
    member_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductSummary(BaseModel):
    id: str
    name: str
    price: Decimal
    image_url: Optional[str] = None


class TierStatusResponse(BaseModel):
    members_required: int
    discount_percentage: Decimal
    unit_price: Decimal
    reached: bool


class DiscountProgressResponse(BaseModel):
    member_count: int
    base_price: Decimal
    discount_percentage: Decimal
    unit_price: Decimal
    savings_per_item: Decimal
    next_tier_members_required: Optional[int] = None
    next_tier_discount_percentage: Optional[Decimal] = None
    members_needed: int
    tiers: List[TierStatusResponse]

    @classmethod
    def from_progress(cls, progress: DiscountProgress) -> "DiscountProgressResponse":
        return cls(
            member_count=progress.member_count,
            base_price=progress.base_price,
            discount_percentage=progress.percentage,
            unit_price=progress.unit_price,
            savings_per_item=progress.savings_per_item,
            next_tier_members_required=progress.next_tier.members_required if progress.next_tier else None,
            next_tier_discount_percentage=progress.next_tier.percentage if progress.next_tier else None,
            members_needed=progress.members_needed,
            tiers=[
                TierStatusResponse(
                    members_required=t.members_required,
                    discount_percentage=t.percentage,
                    unit_price=t.unit_price,
                    reached=t.reached
                )
                for t in progress.tiers
            ]
        )


class MemberResponse(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    joined_at: Optional[datetime] = None
    is_creator: bool = False


class GroupDetailResponse(GroupResponse):
    creator: Optional[ProfileSummary] = None
    product: Optional[ProductSummary] = None
    members: Optional[List[MemberResponse]] = None
    membership_state: MembershipState
    is_creator: bool = False
    can_view: bool = True
    discount: Optional[DiscountProgressResponse] = None


class AccessCodeJoin(BaseModel):
    access_code: str = Field(min_length=1, max_length=64)


class JoinResult(BaseModel):
    group_id: str
    action: str  # joined | requested | left | cancelled
    membership_state: MembershipState
    message: str


class JoinRequestResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    status: str
    requested_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    requester: Optional[ProfileSummary] = None


class ReviewResult(BaseModel):
    request_id: str
    group_id: str
    user_id: str
    status: str  # approved | rejected


class InviteCreate(BaseModel):
    emails: List[EmailStr] = Field(min_length=1, max_length=50)


class InviteResult(BaseModel):
    sent: List[str]
    skipped: List[str]
    failed: List[str]


class InviteResponse(BaseModel):
    id: str
    group_id: str
    group_name: Optional[str] = None
    invited_by: str
    invited_email: str
    status: str
    created_at: Optional[datetime] = None


class AccessCodeResponse(BaseModel):
    group_id: str
    access_code: str
