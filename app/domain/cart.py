# app/domain/cart.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

# zakresy kolumn BIGINT i ilosci (uint32)
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1
MAX_QUANTITY = 2**32 - 1


class LineItem(BaseModel):
    """Pojedynczy produkt i jego ilosc w koszyku."""

    product_id: int
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Cart(BaseModel):
    """Koszyk uzytkownika. ``id`` nadaje baza przy tworzeniu."""

    id: int | None = None
    user_id: int
    items: List[LineItem] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def quantities(self) -> dict[int, int]:
        return {i.product_id: i.quantity for i in self.items}
