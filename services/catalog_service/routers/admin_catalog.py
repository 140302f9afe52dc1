"""Operator menu management: categories and dishes."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import require_operator
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.catalog_service.models import Category, Product
from services.catalog_service.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductDeleteResponse,
    ProductResponse,
    ProductUpdate,
)
from services.orders_service.models import OrderItem
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(tags=["admin-catalog"])


async def _get_category_or_404(db: AsyncSession, category_id: uuid.UUID) -> Category:
    result = await db.execute(select(Category).where(Category.id == category_id))
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


async def _get_product_or_404(db: AsyncSession, product_id: uuid.UUID) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _ensure_category_exists(db: AsyncSession, category_id: uuid.UUID) -> None:
    result = await db.execute(select(Category.id).where(Category.id == category_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=400, detail="Unknown category")


# ============================================================================
# CATEGORIES
# ============================================================================


@router.post(
    "/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED
)
async def create_category(
    category_in: CategoryCreate,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new category."""
    category = Category(**category_in.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)

    logger.info(
        "Category created",
        extra={
            "extra_fields": {
                "category_id": str(category.id),
                "performed_by": current_user.user_id,
            }
        },
    )
    return category


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    category_in: CategoryUpdate,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a category."""
    category = await _get_category_or_404(db, category_id)

    update_data = category_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(category, field, value)

    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: uuid.UUID,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete an empty category."""
    category = await _get_category_or_404(db, category_id)

    product_count = await db.scalar(
        select(func.count())
        .select_from(Product)
        .where(Product.category_id == category_id)
    )
    if product_count:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Category still has products",
        )

    await db.delete(category)
    await db.commit()

    logger.info(
        "Category deleted",
        extra={
            "extra_fields": {
                "category_id": str(category_id),
                "performed_by": current_user.user_id,
            }
        },
    )
    return {"success": True}


# ============================================================================
# PRODUCTS
# ============================================================================


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new dish."""
    await _ensure_category_exists(db, product_in.category_id)

    product = Product(**product_in.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)

    logger.info(
        "Product created",
        extra={
            "extra_fields": {
                "product_id": str(product.id),
                "price": str(product.price),
                "performed_by": current_user.user_id,
            }
        },
    )
    return product


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a dish."""
    product = await _get_product_or_404(db, product_id)

    update_data = product_in.model_dump(exclude_unset=True)
    if update_data.get("category_id"):
        await _ensure_category_exists(db, update_data["category_id"])

    old_price = product.price
    for field, value in update_data.items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)

    if "price" in update_data and update_data["price"] != old_price:
        logger.info(
            "Product price changed",
            extra={
                "extra_fields": {
                    "product_id": str(product.id),
                    "old_price": str(old_price),
                    "new_price": str(product.price),
                    "performed_by": current_user.user_id,
                }
            },
        )
    return product


@router.delete("/products/{product_id}", response_model=ProductDeleteResponse)
async def delete_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_operator),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Delete a dish.

    Dishes that appear on past orders are marked unavailable instead, so order
    history keeps resolving.
    """
    product = await _get_product_or_404(db, product_id)

    referenced = await db.scalar(
        select(func.count())
        .select_from(OrderItem)
        .where(OrderItem.product_id == product_id)
    )

    if referenced:
        product.is_available = False
        action = "deactivated"
    else:
        await db.delete(product)
        action = "deleted"
    await db.commit()

    logger.info(
        f"Product {action}",
        extra={
            "extra_fields": {
                "product_id": str(product_id),
                "performed_by": current_user.user_id,
            }
        },
    )
    return ProductDeleteResponse(id=product_id, action=action)
