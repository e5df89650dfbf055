"""
Testy silnika zapisu koszykow (CartRepo) na prawdziwej bazie SQLite.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event, select, func, text

from app.data.models.line_item import LineItemModel
from app.domain.cart import MAX_ID, MAX_QUANTITY
from app.domain.errors import (
    CartCancelled,
    CartInternalError,
    CartNotFound,
    CartValidationError,
    ErrorKind,
)
from app.utils.deadline import Deadline


def _later(seconds: int = 1) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


class CancelAfter(Deadline):
    """Deadline ktory anuluje sie przy (n+1)-tym sprawdzeniu."""

    def __init__(self, checks: int):
        super().__init__()
        self.left = checks

    def check(self) -> None:
        self.left -= 1
        if self.left < 0:
            self.cancel()
        super().check()


class TestCreateCart:
    def test_fresh_cart_is_empty_with_equal_timestamps(self, repo, new_cart):
        created = new_cart(user_id=10)

        assert created.id is not None
        assert created.items == []

        fetched = repo.cart_by_id(created.id)
        assert fetched.user_id == 10
        assert fetched.items == []
        assert fetched.created_at == fetched.updated_at
        assert fetched.created_at.tzinfo is not None

    def test_user_can_own_many_carts(self, new_cart):
        first = new_cart(user_id=7)
        second = new_cart(user_id=7)

        assert first.id != second.id


class TestAddProduct:
    def test_quantities_are_merged_not_replaced(self, repo, new_cart):
        cart = new_cart()

        repo.add_product(cart.id, 2, 1, _later())
        repo.add_product(cart.id, 2, 5, _later(2))

        assert repo.cart_by_id(cart.id).quantities() == {2: 6}

    def test_merge_keeps_line_item_created_at(self, repo, new_cart):
        cart = new_cart()
        first, second = _later(1), _later(5)

        repo.add_product(cart.id, 2, 1, first)
        repo.add_product(cart.id, 2, 1, second)

        item = repo.cart_by_id(cart.id).items[0]
        assert item.created_at == first
        assert item.updated_at == second

    def test_add_touches_cart_updated_at(self, repo, new_cart):
        cart = new_cart()
        stamp = _later(3)

        repo.add_product(cart.id, 2, 1, stamp)

        fetched = repo.cart_by_id(cart.id)
        assert fetched.updated_at == stamp
        assert fetched.updated_at > fetched.created_at

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected_without_changes(self, repo, new_cart, quantity):
        cart = new_cart()

        with pytest.raises(CartValidationError) as exc:
            repo.add_product(cart.id, 2, quantity, _later())

        assert exc.value.kind == ErrorKind.VALIDATION
        fetched = repo.cart_by_id(cart.id)
        assert fetched.items == []
        assert fetched.updated_at == cart.updated_at

    def test_unknown_cart_is_not_found(self, repo, session_factory):
        with pytest.raises(CartNotFound):
            repo.add_product(4444444, 2, 1, _later())

        with session_factory() as session:
            count = session.scalar(select(func.count()).select_from(LineItemModel))
        assert count == 0

    def test_concurrent_adds_do_not_lose_updates(self, repo, new_cart):
        cart = new_cart()
        quantities = [1, 2, 3, 4, 5] * 8

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda q: repo.add_product(cart.id, 9, q, _later()), quantities))

        assert repo.cart_by_id(cart.id).quantities() == {9: sum(quantities)}

    @pytest.mark.parametrize("checks", [1, 2, 3, 4])
    def test_cancelled_mid_transaction_rolls_back(self, repo, new_cart, checks):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later(1))
        before = repo.cart_by_id(cart.id)

        with pytest.raises(CartCancelled) as exc:
            repo.add_product(cart.id, 3, 7, _later(5), deadline=CancelAfter(checks))

        assert exc.value.kind == ErrorKind.CANCELLED
        after = repo.cart_by_id(cart.id)
        assert after.quantities() == {2: 1}
        assert after.updated_at == before.updated_at

    def test_expired_deadline_does_no_work(self, repo, new_cart):
        cart = new_cart()

        with pytest.raises(CartCancelled):
            repo.add_product(cart.id, 2, 1, _later(), deadline=Deadline(0))

        assert repo.cart_by_id(cart.id).items == []

    def test_store_failure_is_internal(self, repo, new_cart, engine):
        cart = new_cart()
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE line_items"))

        with pytest.raises(CartInternalError) as exc:
            repo.add_product(cart.id, 2, 1, _later())

        assert exc.value.kind == ErrorKind.INTERNAL
        assert exc.value.__cause__ is not None


class TestDeleteProduct:
    def test_removes_only_that_product(self, repo, new_cart):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later())
        repo.add_product(cart.id, 3, 2, _later())

        repo.delete_product(cart.id, 3)

        assert repo.cart_by_id(cart.id).quantities() == {2: 1}

    def test_missing_pairing_is_not_an_error(self, repo, new_cart):
        cart = new_cart()

        repo.delete_product(cart.id, 99)
        repo.delete_product(4444444, 99)

        assert repo.cart_by_id(cart.id).items == []


class TestCartByID:
    def test_unknown_cart_is_not_found(self, repo):
        with pytest.raises(CartNotFound) as exc:
            repo.cart_by_id(4444444)

        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_items_in_retrieval_order(self, repo, new_cart):
        cart = new_cart()
        repo.add_product(cart.id, 5, 1, _later(1))
        repo.add_product(cart.id, 3, 1, _later(2))
        repo.add_product(cart.id, 4, 1, _later(3))

        assert [i.product_id for i in repo.cart_by_id(cart.id).items] == [5, 3, 4]


class TestDeleteCart:
    def test_cascades_to_line_items(self, repo, new_cart, session_factory):
        cart = new_cart()
        other = new_cart(user_id=11)
        repo.add_product(cart.id, 2, 1, _later())
        repo.add_product(other.id, 2, 1, _later())

        repo.delete_cart(cart.id)

        with pytest.raises(CartNotFound):
            repo.cart_by_id(cart.id)
        with session_factory() as session:
            left = session.scalars(select(LineItemModel.cart_id)).all()
        assert left == [other.id]

    def test_cart_without_items_can_be_deleted(self, repo, new_cart):
        cart = new_cart()

        repo.delete_cart(cart.id)

        with pytest.raises(CartNotFound):
            repo.cart_by_id(cart.id)

    def test_unknown_cart_is_not_found(self, repo):
        with pytest.raises(CartNotFound):
            repo.delete_cart(4444444)


class TestDeleteLineItems:
    def test_empties_and_stamps_cart(self, repo, new_cart):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later(1))
        repo.add_product(cart.id, 3, 2, _later(2))
        stamp = _later(5)

        repo.delete_line_items(cart.id, stamp)

        fetched = repo.cart_by_id(cart.id)
        assert fetched.items == []
        assert fetched.updated_at == stamp
        assert fetched.updated_at > fetched.created_at

    def test_empty_cart_can_be_emptied(self, repo, new_cart):
        cart = new_cart()

        repo.delete_line_items(cart.id, _later())

        assert repo.cart_by_id(cart.id).items == []

    def test_unknown_cart_is_not_found(self, repo):
        with pytest.raises(CartNotFound):
            repo.delete_line_items(4444444, _later())


class TestLockOrder:
    """Kazdy zapis na koszyku zaczyna od wiersza w carts, potem line_items."""

    @pytest.fixture
    def statements(self, engine):
        seen = []

        def _record(conn, cursor, statement, parameters, context, executemany):
            sql = statement.strip().upper()
            if sql != "BEGIN" and not sql.startswith("PRAGMA"):
                seen.append(sql)

        event.listen(engine, "before_cursor_execute", _record)
        yield seen
        event.remove(engine, "before_cursor_execute", _record)

    @pytest.mark.parametrize(
        "operation",
        [
            lambda repo, cart_id: repo.add_product(cart_id, 2, 1, _later(5)),
            lambda repo, cart_id: repo.delete_line_items(cart_id, _later(5)),
            lambda repo, cart_id: repo.delete_cart(cart_id),
        ],
        ids=["add_product", "delete_line_items", "delete_cart"],
    )
    def test_cart_row_locked_first(self, repo, new_cart, statements, operation):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later(1))
        statements.clear()

        operation(repo, cart.id)

        assert statements[0].startswith("UPDATE CARTS")
        assert any("LINE_ITEMS" in s for s in statements[1:])

    def test_missing_cart_stops_before_deleting_items(self, repo, statements):
        with pytest.raises(CartNotFound):
            repo.delete_line_items(4444444, _later())

        assert len(statements) == 1
        assert statements[0].startswith("UPDATE CARTS")


class TestValueRanges:
    def test_quantity_above_uint32_rejected(self, repo, new_cart):
        cart = new_cart()

        with pytest.raises(CartValidationError):
            repo.add_product(cart.id, 2, MAX_QUANTITY + 1, _later())

        assert repo.cart_by_id(cart.id).items == []

    def test_largest_quantity_is_stored(self, repo, new_cart):
        cart = new_cart()

        repo.add_product(cart.id, 2, MAX_QUANTITY, _later())

        assert repo.cart_by_id(cart.id).quantities() == {2: MAX_QUANTITY}

    def test_merge_past_uint32_rejected_and_rolled_back(self, repo, new_cart):
        cart = new_cart()
        repo.add_product(cart.id, 2, MAX_QUANTITY, _later(1))
        before = repo.cart_by_id(cart.id)

        with pytest.raises(CartValidationError):
            repo.add_product(cart.id, 2, 1, _later(5))

        after = repo.cart_by_id(cart.id)
        assert after.quantities() == {2: MAX_QUANTITY}
        assert after.updated_at == before.updated_at

    def test_product_id_beyond_int64_is_validation(self, repo, new_cart):
        cart = new_cart()

        with pytest.raises(CartValidationError) as exc:
            repo.add_product(cart.id, 2**64, 1, _later())
        assert exc.value.kind == ErrorKind.VALIDATION

        with pytest.raises(CartValidationError):
            repo.delete_product(cart.id, 2**64)

    @pytest.mark.parametrize("cart_id", [MAX_ID + 1, -(2**64)])
    def test_cart_id_beyond_int64_is_validation(self, repo, cart_id):
        with pytest.raises(CartValidationError):
            repo.cart_by_id(cart_id)
        with pytest.raises(CartValidationError):
            repo.delete_cart(cart_id)
        with pytest.raises(CartValidationError):
            repo.delete_line_items(cart_id, _later())

    def test_largest_ids_are_not_found(self, repo):
        with pytest.raises(CartNotFound):
            repo.cart_by_id(MAX_ID)
        with pytest.raises(CartNotFound):
            repo.add_product(MAX_ID, MAX_ID, 1, _later())

    def test_user_id_beyond_int64_is_validation(self, service):
        with pytest.raises(CartValidationError):
            service.create(2**64)


class TestCancellation:
    # kolejne sprawdzenia: przed BEGIN, UPDATE carts, DELETE line_items, DELETE carts, przed commitem
    @pytest.mark.parametrize("checks", [1, 2, 3, 4])
    def test_delete_cart_rolls_back(self, repo, new_cart, checks):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later(1))
        before = repo.cart_by_id(cart.id)

        with pytest.raises(CartCancelled):
            repo.delete_cart(cart.id, deadline=CancelAfter(checks))

        after = repo.cart_by_id(cart.id)
        assert after.quantities() == {2: 1}
        assert after.updated_at == before.updated_at

    # przed BEGIN, UPDATE carts, DELETE line_items, przed commitem
    @pytest.mark.parametrize("checks", [1, 2, 3])
    def test_delete_line_items_rolls_back(self, repo, new_cart, checks):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later(1))
        repo.add_product(cart.id, 3, 4, _later(2))
        before = repo.cart_by_id(cart.id)

        with pytest.raises(CartCancelled):
            repo.delete_line_items(cart.id, _later(9), deadline=CancelAfter(checks))

        after = repo.cart_by_id(cart.id)
        assert after.quantities() == {2: 1, 3: 4}
        assert after.updated_at == before.updated_at

    @pytest.mark.parametrize("checks", [0, 1, 2, 3])
    def test_cart_by_id_cancelled(self, repo, new_cart, checks):
        cart = new_cart()
        repo.add_product(cart.id, 2, 1, _later(1))

        with pytest.raises(CartCancelled) as exc:
            repo.cart_by_id(cart.id, deadline=CancelAfter(checks))

        assert exc.value.kind == ErrorKind.CANCELLED
        assert repo.cart_by_id(cart.id).quantities() == {2: 1}

    def test_cart_by_id_within_deadline(self, repo, new_cart):
        cart = new_cart()

        assert repo.cart_by_id(cart.id, deadline=Deadline(30)).items == []
