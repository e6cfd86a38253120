from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductResponse, ProductActiveUpdate,
    DiscountTiersUpdate, ProductWithTiersResponse
)
from circlebuy.modules.products.service import ProductService
from circlebuy.modules.profiles.schemas import Role
from circlebuy.core.dependencies import get_current_session, require_role
from circlebuy.core.session import UserSession
from circlebuy.core.storage import S3Storage, get_storage
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/products", tags=["products"])


def get_product_service(supabase: Client = Depends(get_supabase)) -> ProductService:
    return ProductService(supabase)


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    vendor_id: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    session: UserSession = Depends(get_current_session),
    service: ProductService = Depends(get_product_service)
):
    """List active products. Vendors listing their own catalogue also see inactive items."""
    include_inactive = session.is_admin or (vendor_id is not None and vendor_id == session.user_id)
    return service.list_products(
        category=category, search=search, vendor_id=vendor_id,
        include_inactive=include_inactive, limit=limit, offset=offset
    )


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    product_data: ProductCreate,
    session: UserSession = Depends(require_role(Role.VENDOR, Role.ADMIN)),
    service: ProductService = Depends(get_product_service)
):
    """Create a product (vendor with approved KYC)"""
    return service.create_product(product_data, session)


@router.get("/{product_id}", response_model=ProductWithTiersResponse)
async def get_product(
    product_id: str,
    session: UserSession = Depends(get_current_session),
    service: ProductService = Depends(get_product_service)
):
    """Get a product with its group discount tiers"""
    return service.get_product_with_tiers(product_id)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    session: UserSession = Depends(require_role(Role.VENDOR, Role.ADMIN)),
    service: ProductService = Depends(get_product_service)
):
    return service.update_product(product_id, product_data, session)


@router.put("/{product_id}/active", response_model=ProductResponse)
async def set_product_active(
    product_id: str,
    body: ProductActiveUpdate,
    session: UserSession = Depends(require_role(Role.ADMIN)),
    service: ProductService = Depends(get_product_service)
):
    """Activate or deactivate a product (admin only)"""
    return service.set_active(product_id, body.is_active)


@router.put("/{product_id}/discount-tiers", response_model=ProductWithTiersResponse)
async def set_discount_tiers(
    product_id: str,
    body: DiscountTiersUpdate,
    session: UserSession = Depends(require_role(Role.VENDOR, Role.ADMIN)),
    service: ProductService = Depends(get_product_service)
):
    """Replace the product's group discount tiers"""
    return service.set_discount_tiers(product_id, body.tiers, session)


@router.post("/{product_id}/image", response_model=ProductResponse)
async def upload_product_image(
    product_id: str,
    file: UploadFile = File(...),
    session: UserSession = Depends(require_role(Role.VENDOR, Role.ADMIN)),
    service: ProductService = Depends(get_product_service),
    storage: S3Storage = Depends(get_storage)
):
    content = await file.read()
    try:
        return service.upload_image(product_id, storage, content, file.content_type, session)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
