# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from datetime import datetime

from app.domain.cart import Cart, MIN_ID, MAX_ID, MAX_QUANTITY


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., ge=MIN_ID, le=MAX_ID, description="ID produktu")
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY, description="Ilość produktu (musi być > 0)")


class CreateCartIn(BaseModel):
    """Schema dla tworzenia koszyka."""

    user_id: int = Field(..., ge=MIN_ID, le=MAX_ID, description="ID użytkownika")


class LineItemOut(BaseModel):
    """Schema dla produktu w koszyku (response)."""

    product_id: int
    quantity: int


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    id: int
    user_id: int
    items: List[LineItemOut]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartOut":
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            items=[LineItemOut(product_id=i.product_id, quantity=i.quantity) for i in cart.items],
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )

