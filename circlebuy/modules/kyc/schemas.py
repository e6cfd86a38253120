from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional
from datetime import datetime


class KycSubmit(BaseModel):
    business_name: str = Field(min_length=1)
    ho_address: str = Field(min_length=1)
    warehouse_address: str = Field(min_length=1)
    phone_number: str = Field(min_length=6, max_length=20)
    gst_number: str = Field(min_length=15, max_length=15)
    pan_number: str = Field(min_length=10, max_length=10)
    tan_number: str = Field(min_length=10, max_length=10)
    gst_url: Optional[str] = None
    pan_url: Optional[str] = None
    turnover_over_5cr: bool = False


class KycReview(BaseModel):
    status: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = None

    @model_validator(mode="after")
    def reason_required_on_reject(self):
        if self.status == "rejected" and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting")
        return self


class KycResponse(BaseModel):
    id: str
    vendor_id: str
    business_name: str
    ho_address: str
    warehouse_address: str
    phone_number: str
    gst_number: str
    pan_number: str
    tan_number: str
    gst_url: Optional[str] = None
    pan_url: Optional[str] = None
    turnover_over_5cr: bool
    status: str
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    version: int = 1
    is_active: bool = True
    previous_kyc_id: Optional[str] = None
    submission_count: int = 1

    class Config:
        from_attributes = True
