"""Lista de desejos do cliente logado na vitrine."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel as PydanticBaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.auth.dependencies import get_current_customer
from app.db.session import get_session
from app.model.customer import Customer
from app.model.product import Product, ProductStatus
from app.model.wishlist import ProductWishlist

router = APIRouter(prefix="/store", tags=["Wishlist"])


class WishlistProduct(PydanticBaseModel):
    id: int
    name: str
    slug: str
    price: Decimal
    sale_price: Optional[Decimal] = None
    image: Optional[str] = None
    status: ProductStatus
    stock_quantity: int

    class Config:
        from_attributes = True


class WishlistItemResponse(PydanticBaseModel):
    id: int
    product: WishlistProduct
    added_at: datetime


class WishlistAdd(PydanticBaseModel):
    product_id: int


def _item_response(item: ProductWishlist, product: Product) -> WishlistItemResponse:
    return WishlistItemResponse(
        id=item.id,
        product=WishlistProduct.model_validate(product),
        added_at=item.created_at,
    )


@router.get("/profile/wishlist", response_model=list[WishlistItemResponse])
def list_wishlist(
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    rows = session.exec(
        select(ProductWishlist, Product)
        .join(Product, Product.id == ProductWishlist.product_id)
        .where(ProductWishlist.tenant_id == customer.tenant_id, ProductWishlist.customer_id == customer.id)
        .order_by(ProductWishlist.created_at.desc(), ProductWishlist.id.desc())
    ).all()
    return [_item_response(item, product) for item, product in rows]


@router.post("/profile/wishlist", response_model=WishlistItemResponse, status_code=201)
def add_to_wishlist(
    body: WishlistAdd,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    product = session.get(Product, body.product_id)
    if not product or product.tenant_id != customer.tenant_id:
        raise HTTPException(status_code=404, detail="Product not found")

    existing = session.exec(
        select(ProductWishlist.id).where(
            ProductWishlist.tenant_id == customer.tenant_id,
            ProductWishlist.customer_id == customer.id,
            ProductWishlist.product_id == product.id,
        )
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Product already in wishlist")

    item = ProductWishlist(tenant_id=customer.tenant_id, customer_id=customer.id, product_id=product.id)
    session.add(item)
    try:
        session.commit()
    except IntegrityError:
        # Dois cliques simultâneos: a constraint única decide
        session.rollback()
        raise HTTPException(status_code=400, detail="Product already in wishlist")
    session.refresh(item)
    return _item_response(item, product)


@router.delete("/profile/wishlist/{product_id}", status_code=204)
def remove_from_wishlist(
    product_id: int,
    customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session),
):
    item = session.exec(
        select(ProductWishlist).where(
            ProductWishlist.tenant_id == customer.tenant_id,
            ProductWishlist.customer_id == customer.id,
            ProductWishlist.product_id == product_id,
        )
    ).first()
    if not item:
        raise HTTPException(status_code=404, detail="Wishlist item not found")
    session.delete(item)
    session.commit()
    return Response(status_code=204)
