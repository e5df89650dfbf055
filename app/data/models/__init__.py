#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from app.data.models.cart import CartModel
from app.data.models.line_item import LineItemModel

__all__ = ["CartModel", "LineItemModel"]
