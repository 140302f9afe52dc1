"""Public menu router: categories and dishes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from libs.db.session import get_async_db
from services.catalog_service.models import Category, Product
from services.catalog_service.schemas import CategoryResponse, ProductResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["catalog"])


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_db),
):
    """List menu categories in display order."""
    query = select(Category).order_by(Category.sort_order, Category.name)
    if not include_inactive:
        query = query.where(Category.is_active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    category_id: Optional[uuid.UUID] = None,
    available_only: bool = False,
    db: AsyncSession = Depends(get_async_db),
):
    """List dishes, optionally filtered by category and availability."""
    query = select(Product)
    if category_id:
        query = query.where(Product.category_id == category_id)
    if available_only:
        query = query.where(Product.is_available.is_(True))

    query = query.order_by(Product.sort_order, Product.name)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
