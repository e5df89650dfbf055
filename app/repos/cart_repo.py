# app/repos/cart_repo.py
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import select, update, delete, insert, text
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError, DBAPIError
from sqlalchemy.orm import Session, sessionmaker

from app.data.models.cart import CartModel
from app.data.models.line_item import LineItemModel
from app.domain.cart import Cart, LineItem, MIN_ID, MAX_ID, MAX_QUANTITY
from app.domain.errors import (
    CartError,
    CartCancelled,
    CartInternalError,
    CartNotFound,
    CartValidationError,
    RetryableConflict,
    TransientStoreError,
)
from app.utils.deadline import Deadline
from app.utils.retry import db_retry, conflict_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)

# postgres: query_canceled (statement_timeout albo pg_cancel_backend)
_PG_QUERY_CANCELED = "57014"


def _utc(value: datetime) -> datetime:
    #sqlite zwraca naiwne datetime
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _classify(exc: SQLAlchemyError) -> CartError:
    orig = getattr(exc, "orig", None)

    if getattr(orig, "pgcode", None) == _PG_QUERY_CANCELED:
        return CartCancelled(f"Zapytanie anulowane przez baze: {orig}")

    if isinstance(exc, IntegrityError):
        return RetryableConflict(str(exc))

    if isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        return TransientStoreError(str(exc))

    return CartInternalError(str(exc))


def _execute(session: Session, statement, deadline: Deadline | None):
    if deadline is not None:
        deadline.check()
    return session.execute(statement)


def _check_id(name: str, value: int) -> None:
    #poza BIGINT sterownik rzuca OverflowError zamiast bledu bazy
    if not MIN_ID <= value <= MAX_ID:
        raise CartValidationError(f"{name} poza zakresem: {value}")


class CartRepo:
    """
    Trwaly zapis koszykow i pozycji.

    Kazda publiczna operacja to dokladnie jedna transakcja: commit gdy blok
    przejdzie, rollback przy kazdym wyjatku (sessionmaker.begin()).
    Bledy bazy sa zamieniane na wyjatki z app.domain.errors.

    Kolejnosc blokad jest jedna dla wszystkich operacji zapisu na koszyku:
    najpierw wiersz w carts (UPDATE carts), dopiero potem jego line_items.
    Dzieki temu add_product, delete_cart i delete_line_items na tym samym
    koszyku czekaja na siebie zamiast sie zakleszczac.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _transaction(
        self,
        deadline: Deadline | None = None,
        read_only: bool = False,
    ) -> Iterator[Session]:
        if deadline is not None:
            deadline.check()

        try:
            with self.session_factory.begin() as session:
                self._prepare(session, deadline, read_only)
                yield session

                #nie commitujemy po terminie
                if deadline is not None:
                    deadline.check()
        except SQLAlchemyError as e:
            logger.debug(f"Transaction rolled back: {e}")
            raise _classify(e) from e

    @staticmethod
    def _prepare(session: Session, deadline: Deadline | None, read_only: bool) -> None:
        if session.get_bind().dialect.name != "postgresql":
            # sqlite: transakcje i tak sa serializowalne
            return

        if read_only:
            session.connection(
                execution_options={
                    "isolation_level": "REPEATABLE READ",
                    "postgresql_readonly": True,
                }
            )

        remaining = deadline.remaining() if deadline is not None else None
        if remaining is not None:
            timeout_ms = max(1, int(remaining * 1000))
            session.execute(
                text("SELECT set_config('statement_timeout', :ms, true)"),
                {"ms": str(timeout_ms)},
            )

    @staticmethod
    def _lock_cart(
        session: Session,
        cart_id: int,
        deadline: Deadline | None,
        now: datetime | None = None,
    ) -> None:
        """
        Pierwsze zapytanie kazdej transakcji zapisu: blokada wiersza koszyka.
        Bez ``now`` updated_at zostaje bez zmian (UPDATE tylko dla blokady).
        """
        stamp = CartModel.updated_at if now is None else now
        touched = _execute(
            session,
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(updated_at=stamp)
            .execution_options(synchronize_session=False),
            deadline,
        )

        if touched.rowcount == 0:
            raise CartNotFound(f"Koszyk {cart_id} nie istnieje")

    # =====================================================
    # CARTS
    # =====================================================
    def create_cart(self, cart: Cart, deadline: Deadline | None = None) -> Cart:
        _check_id("user_id", cart.user_id)

        with self._transaction(deadline) as session:
            model = CartModel(
                user_id=cart.user_id,
                created_at=cart.created_at,
                updated_at=cart.updated_at,
            )
            session.add(model)

            if deadline is not None:
                deadline.check()
            session.flush()
            cart_id = model.id

        logger.debug(f"Created cart {cart_id} for user {cart.user_id}")
        return cart.model_copy(update={"id": cart_id, "items": []})

    def delete_cart(self, cart_id: int, deadline: Deadline | None = None) -> None:
        _check_id("cart_id", cart_id)

        with self._transaction(deadline) as session:
            self._lock_cart(session, cart_id, deadline)

            #brak pozycji to nie blad
            _execute(
                session,
                delete(LineItemModel)
                .where(LineItemModel.cart_id == cart_id)
                .execution_options(synchronize_session=False),
                deadline,
            )

            _execute(
                session,
                delete(CartModel)
                .where(CartModel.id == cart_id)
                .execution_options(synchronize_session=False),
                deadline,
            )

        logger.debug(f"Deleted cart {cart_id}")

    @db_retry()
    def cart_by_id(self, cart_id: int, deadline: Deadline | None = None) -> Cart:
        """
        Naglowek koszyka i jego pozycje z jednego snapshotu
        (transakcja read-only, na postgresie REPEATABLE READ).
        """
        _check_id("cart_id", cart_id)

        with self._transaction(deadline, read_only=True) as session:
            header = _execute(
                session,
                select(CartModel.user_id, CartModel.created_at, CartModel.updated_at)
                .where(CartModel.id == cart_id),
                deadline,
            ).one_or_none()

            if header is None:
                raise CartNotFound(f"Koszyk {cart_id} nie istnieje")

            rows = _execute(
                session,
                select(
                    LineItemModel.product_id,
                    LineItemModel.quantity,
                    LineItemModel.created_at,
                    LineItemModel.updated_at,
                )
                .where(LineItemModel.cart_id == cart_id)
                .order_by(LineItemModel.created_at, LineItemModel.product_id),
                deadline,
            ).all()

        return Cart(
            id=cart_id,
            user_id=header.user_id,
            items=[
                LineItem(
                    product_id=r.product_id,
                    quantity=r.quantity,
                    created_at=_utc(r.created_at),
                    updated_at=_utc(r.updated_at),
                )
                for r in rows
            ],
            created_at=_utc(header.created_at),
            updated_at=_utc(header.updated_at),
        )

    # =====================================================
    # LINE ITEMS
    # =====================================================
    @conflict_retry()
    def add_product(
        self,
        cart_id: int,
        product_id: int,
        quantity: int,
        now: datetime,
        deadline: Deadline | None = None,
    ) -> None:
        """
        Dodaje ilosc produktu do koszyka (merge, nie zamiana).

        Pierwszy UPDATE na wierszu koszyka (_lock_cart) bierze blokade, wiec
        rownolegle add_product dla tego samego koszyka czekaja na commit
        i czytaja juz zatwierdzona ilosc. Kolizja klucza przy insercie
        (RetryableConflict) powtarza cala transakcje.
        """
        if quantity <= 0:
            raise CartValidationError("Ilosc musi byc wieksza niz 0")
        if quantity > MAX_QUANTITY:
            raise CartValidationError(f"Ilosc nie moze przekraczac {MAX_QUANTITY}")
        _check_id("cart_id", cart_id)
        _check_id("product_id", product_id)

        with self._transaction(deadline) as session:
            self._lock_cart(session, cart_id, deadline, now)

            existing = _execute(
                session,
                select(LineItemModel.quantity).where(
                    LineItemModel.cart_id == cart_id,
                    LineItemModel.product_id == product_id,
                ),
                deadline,
            ).scalar_one_or_none()

            if existing is not None and existing + quantity > MAX_QUANTITY:
                raise CartValidationError(
                    f"Ilosc produktu {product_id} przekroczylaby {MAX_QUANTITY}"
                )

            if existing is None:
                _execute(
                    session,
                    insert(LineItemModel).values(
                        cart_id=cart_id,
                        product_id=product_id,
                        quantity=quantity,
                        created_at=now,
                        updated_at=now,
                    ),
                    deadline,
                )
            else:
                _execute(
                    session,
                    update(LineItemModel)
                    .where(
                        LineItemModel.cart_id == cart_id,
                        LineItemModel.product_id == product_id,
                    )
                    .values(quantity=existing + quantity, updated_at=now)
                    .execution_options(synchronize_session=False),
                    deadline,
                )

        logger.debug(
            f"Product {product_id} x{quantity} merged into cart {cart_id} "
            f"(previous quantity: {existing or 0})"
        )

    def delete_product(
        self,
        cart_id: int,
        product_id: int,
        deadline: Deadline | None = None,
    ) -> None:
        _check_id("cart_id", cart_id)
        _check_id("product_id", product_id)

        # jedno zapytanie, brak pozycji to nie blad
        with self._transaction(deadline) as session:
            _execute(
                session,
                delete(LineItemModel)
                .where(
                    LineItemModel.cart_id == cart_id,
                    LineItemModel.product_id == product_id,
                )
                .execution_options(synchronize_session=False),
                deadline,
            )

    def delete_line_items(
        self,
        cart_id: int,
        now: datetime,
        deadline: Deadline | None = None,
    ) -> None:
        _check_id("cart_id", cart_id)

        with self._transaction(deadline) as session:
            self._lock_cart(session, cart_id, deadline, now)

            _execute(
                session,
                delete(LineItemModel)
                .where(LineItemModel.cart_id == cart_id)
                .execution_options(synchronize_session=False),
                deadline,
            )

        logger.debug(f"Emptied cart {cart_id}")
