import pytest

from conftest import create_variant, in_tx, run_db, stock_levels
from shared.config.database import Base
from shared.errors import (
    InsufficientStock,
    InvalidInput,
    StockInvariantViolation,
    StockItemExists,
    StockItemNotFound,
)
from services.stock_service.ledger import Originator, StockLedger
from services.stock_service.models import MovementType
from services.stock_service.repository import StockRepository

ledger = StockLedger()
SYSTEM = Originator.system("tests")


async def movements(db, store_id, variant_id):
    items, _ = await StockRepository.query_movements(db, store_id, variant_id=variant_id, limit=100)
    return items


def test_opening_balance_is_recorded_as_purchase(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=7)
        lines = await movements(db, store_id, variant_id)
        return await stock_levels(db, store_id, variant_id), lines

    (count, reserved), lines = run_db(scenario)
    assert (count, reserved) == (7, 0)
    assert [(m.type, m.quantity, m.count_delta, m.reserved_delta) for m in lines] == [("purchase", 7, 7, 0)]


def test_open_stock_item_twice_conflicts(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=1)
        await in_tx(db, lambda tx: ledger.open_stock_item(tx, variant_id, store_id, 3, SYSTEM))

    with pytest.raises(StockItemExists):
        run_db(scenario)


def test_concurrent_open_maps_the_unique_violation(store_id, monkeypatch):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=2)

        async def not_seen_yet(db, variant_id, store_id, **kwargs):
            return None

        # Both openers pass the existence check; the database decides
        monkeypatch.setattr(StockRepository, "get_stock_item", staticmethod(not_seen_yet))
        try:
            await in_tx(db, lambda tx: ledger.open_stock_item(tx, variant_id, store_id, 0, SYSTEM))
        finally:
            monkeypatch.undo()

    with pytest.raises(StockItemExists):
        run_db(scenario)


def test_reserve_moves_units_out_of_available(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=10)
        movement = await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, 4, None, SYSTEM))
        return movement, await stock_levels(db, store_id, variant_id)

    movement, levels = run_db(scenario)
    assert levels == (10, 4)
    assert movement.type == "reserved"
    assert (movement.quantity, movement.count_delta, movement.reserved_delta) == (-4, 0, 4)


def test_reserve_beyond_available_changes_nothing(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=3)
        with pytest.raises(InsufficientStock) as exc_info:
            await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, 4, None, SYSTEM))
        lines = await movements(db, store_id, variant_id)
        return exc_info.value, await stock_levels(db, store_id, variant_id), lines

    error, levels, lines = run_db(scenario)
    assert error.available == 3
    assert levels == (3, 0)
    assert [m.type for m in lines] == ["purchase"]


@pytest.mark.parametrize("quantity", [0, -2])
def test_reserve_requires_positive_quantity(store_id, quantity):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=3)
        await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, quantity, None, SYSTEM))

    with pytest.raises(InvalidInput):
        run_db(scenario)


def test_release_more_than_reserved_is_rejected(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, 2, None, SYSTEM))
        with pytest.raises(StockInvariantViolation):
            await in_tx(db, lambda tx: ledger.release(tx, variant_id, store_id, 3, None, SYSTEM))
        return await stock_levels(db, store_id, variant_id)

    assert run_db(scenario) == (5, 2)


def test_ship_then_finalize(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=10)
        await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, 2, None, SYSTEM))
        shipped = await in_tx(db, lambda tx: ledger.consume_on_ship(tx, variant_id, store_id, 2, None, SYSTEM))
        after_ship = await stock_levels(db, store_id, variant_id)
        sale = await in_tx(db, lambda tx: ledger.finalize(tx, variant_id, store_id, 2, None, SYSTEM))
        return shipped, after_ship, sale, await stock_levels(db, store_id, variant_id)

    shipped, after_ship, sale, final = run_db(scenario)
    assert after_ship == (10, 2)
    assert (shipped.type, shipped.quantity, shipped.count_delta, shipped.reserved_delta) == ("shipped", -2, 0, 0)
    assert final == (8, 0)
    assert (sale.type, sale.quantity, sale.count_delta, sale.reserved_delta) == ("sale", 0, -2, -2)


def test_manual_adjustments(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        admin = Originator.admin("admin-1")
        await in_tx(db, lambda tx: ledger.adjust(tx, variant_id, store_id, 3, MovementType.PURCHASE, "restock", admin))
        await in_tx(db, lambda tx: ledger.adjust(tx, variant_id, store_id, 2, MovementType.LOSS, "damaged", admin))
        await in_tx(db, lambda tx: ledger.adjust(tx, variant_id, store_id, -1, MovementType.ADJUSTMENT, "recount", admin))
        return await stock_levels(db, store_id, variant_id)

    assert run_db(scenario) == (5, 0)


def test_adjust_cannot_drop_count_below_reserved(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, 4, None, SYSTEM))
        with pytest.raises(StockInvariantViolation):
            await in_tx(db, lambda tx: ledger.adjust(
                tx, variant_id, store_id, 2, MovementType.LOSS, "broken", SYSTEM
            ))
        return await stock_levels(db, store_id, variant_id)

    assert run_db(scenario) == (5, 4)


@pytest.mark.parametrize("movement_type, reason", [
    (MovementType.RESERVED, "manual reservation"),
    (MovementType.PURCHASE, "   "),
])
def test_adjust_rejects_order_types_and_blank_reasons(store_id, movement_type, reason):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        await in_tx(db, lambda tx: ledger.adjust(tx, variant_id, store_id, 1, movement_type, reason, SYSTEM))

    with pytest.raises(InvalidInput):
        run_db(scenario)


def test_unknown_variant_has_no_stock_item(store_id):
    async def scenario(db):
        await in_tx(db, lambda tx: ledger.reserve(tx, "no-such-variant", store_id, 1, None, SYSTEM))

    with pytest.raises(StockItemNotFound):
        run_db(scenario)


def test_movement_deltas_reconstruct_counters(store_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=12)
        await in_tx(db, lambda tx: ledger.reserve(tx, variant_id, store_id, 5, None, SYSTEM))
        await in_tx(db, lambda tx: ledger.release(tx, variant_id, store_id, 2, None, SYSTEM))
        await in_tx(db, lambda tx: ledger.consume_on_ship(tx, variant_id, store_id, 3, None, SYSTEM))
        await in_tx(db, lambda tx: ledger.finalize(tx, variant_id, store_id, 3, None, SYSTEM))
        await in_tx(db, lambda tx: ledger.adjust(tx, variant_id, store_id, 4, MovementType.PURCHASE, "restock", SYSTEM))
        return await movements(db, store_id, variant_id), await stock_levels(db, store_id, variant_id)

    lines, (count, reserved) = run_db(scenario)
    assert sum(m.count_delta for m in lines) == count == 13
    assert sum(m.reserved_delta for m in lines) == reserved == 0


def test_no_relationship_uses_noload():
    lazy = {
        (mapper.class_.__name__, rel.key): rel.lazy
        for mapper in Base.registry.mappers
        for rel in mapper.relationships
    }
    assert "noload" not in lazy.values()
    assert {"StockItem", "StockMovement"}.isdisjoint(name for name, _ in lazy)
