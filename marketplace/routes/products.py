"""Seller catalogue endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.enums import ActorRole
from marketplace.core.security import Actor, get_current_actor, require_roles
from marketplace.dependencies import get_db
from marketplace.schemas.product import ProductCreate, ProductDeleteResult, ProductRead, ProductUpdate
from marketplace.services.product_service import ProductService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["products"])

seller_only = require_roles(ActorRole.SELLER)


@router.post("/products", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    actor: Actor = Depends(seller_only),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService(db).create_product(actor.id, product_data)


@router.get("/products/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService(db).get_product(product_id)


@router.patch("/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    actor: Actor = Depends(seller_only),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService(db).update_product(actor.id, product_id, product_data)


@router.delete("/products/{product_id}", response_model=ProductDeleteResult)
async def delete_product(
    product_id: int,
    actor: Actor = Depends(seller_only),
    db: AsyncSession = Depends(get_db),
):
    deleted, product = await ProductService(db).delete_product(actor.id, product_id)
    return ProductDeleteResult(deleted=deleted, disabled=not deleted, product=product)


@router.get("/seller/products", response_model=List[ProductRead])
async def list_seller_products(
    actor: Actor = Depends(seller_only),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService(db).list_seller_products(actor.id)
