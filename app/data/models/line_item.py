from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, CheckConstraint

from app.data.database import Base
from app.data.models.cart import CartID


class LineItemModel(Base):
    __tablename__ = "line_items"

    #jeden wiersz na pare (koszyk, produkt)
    cart_id = Column(
        CartID,
        ForeignKey("carts.cart_id", ondelete="CASCADE"),
        primary_key=True,
    )
    product_id = Column(BigInteger, primary_key=True)

    quantity = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_items_quantity_positive"),
    )
