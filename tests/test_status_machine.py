import pytest
from sqlalchemy import delete

from conftest import create_variant, fill_cart, in_tx, place_order, run_db, stock_levels
from shared.errors import InvalidTransition, StockItemMissing
from services.order_service.models import OrderStatus
from services.order_service.repository import OrderRepository
from services.order_service.status_machine import OrderStatusMachine, TRANSITIONS, can_transition
from services.stock_service.ledger import Originator
from services.stock_service.models import StockItem
from services.stock_service.repository import StockRepository

machine = OrderStatusMachine()
ADMIN = Originator.admin("admin-1")


async def move(db, order_id, target, reason=None):
    async def work(tx):
        order = await OrderRepository.get_order(tx, order_id, for_update=True)
        return await machine.transition(tx, order, target, reason, ADMIN)

    return await in_tx(db, work)


async def snapshot(db, store_id, order_id, variant_id):
    order = await OrderRepository.get_order(db, order_id, refresh=True)
    return {
        "status": order.status,
        "history": [(h.status, h.reason) for h in order.status_history],
        "movements": [(m.type, m.quantity) for m in order.stock_movements],
        "stock": await stock_levels(db, store_id, variant_id),
    }


def test_transition_table():
    assert can_transition("cart", "processing")
    assert can_transition("processing", "shipped")
    assert can_transition("shipped", "cancelled")
    assert not can_transition("completed", "cancelled")
    assert not can_transition("processing", "cart")
    assert not can_transition("processing", "refunded")
    assert TRANSITIONS[OrderStatus.CANCELLED] == frozenset()


def test_ship_keeps_reservation_and_forbids_going_back(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=10)
        await fill_cart(db, store_id, customer_id, (variant_id, 2))
        order_id = await place_order(db, store_id, customer_id)

        await move(db, order_id, "shipped")
        shipped = await snapshot(db, store_id, order_id, variant_id)

        with pytest.raises(InvalidTransition):
            await move(db, order_id, "processing")
        return shipped, await snapshot(db, store_id, order_id, variant_id)

    shipped, after = run_db(scenario)
    assert shipped["status"] == "shipped"
    assert shipped["movements"][0] == ("shipped", -2)
    assert shipped["stock"] == (10, 2)
    assert shipped["history"][0] == ("shipped", "Order status updated to shipped")
    assert after == shipped


def test_complete_consumes_reserved_stock(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=10)
        await fill_cart(db, store_id, customer_id, (variant_id, 2))
        order_id = await place_order(db, store_id, customer_id)
        await move(db, order_id, "shipped")
        await move(db, order_id, "completed", reason="Delivered")
        return await snapshot(db, store_id, order_id, variant_id)

    result = run_db(scenario)
    assert result["stock"] == (8, 0)
    assert result["status"] == "completed"
    assert result["history"][0] == ("completed", "Delivered")
    assert [t for t, _ in result["movements"]] == ["sale", "shipped", "reserved"]


def test_cancel_returns_reserved_units(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        await fill_cart(db, store_id, customer_id, (variant_id, 3))
        order_id = await place_order(db, store_id, customer_id)
        before = await stock_levels(db, store_id, variant_id)
        await move(db, order_id, "cancelled")
        return before, await snapshot(db, store_id, order_id, variant_id)

    before, result = run_db(scenario)
    assert before == (5, 3)
    assert result["stock"] == (5, 0)
    assert result["movements"][0] == ("unreserved", 3)


@pytest.mark.parametrize("start, target", [
    ("processing", "completed"),
    ("processing", "processing"),
    ("completed", "shipped"),
    ("cancelled", "processing"),
])
def test_illegal_transitions_leave_order_and_stock_alone(store_id, customer_id, start, target):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=4)
        await fill_cart(db, store_id, customer_id, (variant_id, 1))
        order_id = await place_order(db, store_id, customer_id)
        if start == "completed":
            await move(db, order_id, "shipped")
            await move(db, order_id, "completed")
        elif start == "cancelled":
            await move(db, order_id, "cancelled")

        before = await snapshot(db, store_id, order_id, variant_id)
        with pytest.raises(InvalidTransition):
            await move(db, order_id, target)
        return before, await snapshot(db, store_id, order_id, variant_id)

    before, after = run_db(scenario)
    assert before["status"] == start
    assert after == before


def test_missing_stock_item_aborts_the_whole_transition(store_id, customer_id):
    async def scenario(db):
        first = await create_variant(db, store_id, stock=5, name="Small")
        second = await create_variant(db, store_id, stock=5, name="Large")
        await fill_cart(db, store_id, customer_id, (first, 1), (second, 1))
        order_id = await place_order(db, store_id, customer_id)
        before = await snapshot(db, store_id, order_id, first)

        async def drop_second(tx):
            item = await StockRepository.get_stock_item(tx, second, store_id)
            await tx.execute(delete(StockItem).where(StockItem.id == item.id))

        await in_tx(db, drop_second)

        with pytest.raises(StockItemMissing):
            await move(db, order_id, "cancelled")
        return before, await snapshot(db, store_id, order_id, first)

    before, after = run_db(scenario)
    assert after == before
    assert after["stock"] == (5, 1)


def test_second_claim_on_the_same_order_loses(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        await fill_cart(db, store_id, customer_id, (variant_id, 1))
        order_id = await place_order(db, store_id, customer_id)

        async def work(tx):
            order = await OrderRepository.get_order(tx, order_id)
            # Another admin cancelled it after we loaded the order
            assert await OrderRepository.claim_status(tx, order_id, "processing", "cancelled")
            await machine.transition(tx, order, "shipped", None, ADMIN)

        with pytest.raises(InvalidTransition) as exc_info:
            await in_tx(db, work)
        return exc_info.value, await snapshot(db, store_id, order_id, variant_id)

    error, result = run_db(scenario)
    assert "already cancelled" in error.message
    assert result["status"] == "processing"
    assert result["stock"] == (5, 1)
