# app/services/cart_service.py
from datetime import datetime, timezone
from typing import Protocol

from app.domain.cart import Cart
from app.domain.errors import CartError, CartNotFound
from app.utils.deadline import Deadline
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartStorage(Protocol):
    def add_product(self, cart_id: int, product_id: int, quantity: int, now: datetime, deadline: Deadline | None = None) -> None: ...
    def delete_product(self, cart_id: int, product_id: int, deadline: Deadline | None = None) -> None: ...
    def cart_by_id(self, cart_id: int, deadline: Deadline | None = None) -> Cart: ...
    def create_cart(self, cart: Cart, deadline: Deadline | None = None) -> Cart: ...
    def delete_cart(self, cart_id: int, deadline: Deadline | None = None) -> None: ...
    def delete_line_items(self, cart_id: int, now: datetime, deadline: Deadline | None = None) -> None: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CartService:
    """
    Jedyne wejscie do domeny Cart dla warstwy transportowej.
    Dokłada znacznik czasu tam gdzie storage go potrzebuje, loguje bledy
    i przepuszcza je bez zmiany rodzaju (ErrorKind).
    """

    def __init__(self, storage: CartStorage):
        self.storage = storage

    #query
    def get(self, cart_id: int, deadline: Deadline | None = None) -> Cart:
        try:
            return self.storage.cart_by_id(cart_id, deadline)
        except CartNotFound:
            raise
        except CartError as e:
            logger.error(f"Failed to get the cart {cart_id}: {e}")
            raise

    #commands
    def create(self, user_id: int, deadline: Deadline | None = None) -> Cart:
        now = _now()
        cart = Cart(user_id=user_id, items=[], created_at=now, updated_at=now)

        try:
            created = self.storage.create_cart(cart, deadline)
        except CartError as e:
            logger.error(f"Failed to create a cart for user {user_id}: {e}")
            raise

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def add_product(
        self,
        cart_id: int,
        product_id: int,
        quantity: int,
        deadline: Deadline | None = None,
    ) -> None:
        try:
            self.storage.add_product(cart_id, product_id, quantity, _now(), deadline)
        except CartError as e:
            logger.error(f"Failed to add product {product_id} to the cart {cart_id}: {e}")
            raise

    def delete_product(
        self,
        cart_id: int,
        product_id: int,
        deadline: Deadline | None = None,
    ) -> None:
        try:
            self.storage.delete_product(cart_id, product_id, deadline)
        except CartError as e:
            logger.error(f"Failed to delete product {product_id} from the cart {cart_id}: {e}")
            raise

    def delete(self, cart_id: int, deadline: Deadline | None = None) -> None:
        try:
            self.storage.delete_cart(cart_id, deadline)
        except CartError as e:
            logger.error(f"Failed to delete the cart {cart_id}: {e}")
            raise

        logger.info(f"Deleted cart {cart_id}")

    def empty(self, cart_id: int, deadline: Deadline | None = None) -> None:
        try:
            self.storage.delete_line_items(cart_id, _now(), deadline)
        except CartError as e:
            logger.error(f"Failed to empty the cart {cart_id}: {e}")
            raise
