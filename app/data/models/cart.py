#app/data/models/cart.py
from sqlalchemy import Column, Integer, BigInteger, DateTime

from app.data.database import Base

# sqlite autoinkrementuje tylko INTEGER PRIMARY KEY
CartID = BigInteger().with_variant(Integer, "sqlite")


class CartModel(Base):
    __tablename__ = "carts"

    id = Column("cart_id", CartID, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
