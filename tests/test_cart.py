from decimal import Decimal

import pytest

from conftest import create_variant, in_tx, place_order, run_db
from shared.errors import CartItemNotFound, VariantNotFound
from services.cart_service.schemas import CartItemCreate, CartItemUpdate
from services.cart_service.service import CartService
from services.catalog_service.models import Variant
from services.catalog_service.repository import VariantRepository


def test_first_access_opens_a_cart_with_history(store_id, customer_id):
    async def scenario(db):
        first = await CartService.get_cart(db, store_id, customer_id)
        again = await CartService.get_cart(db, store_id, customer_id)
        return first, again

    first, again = run_db(scenario)
    assert first.id == again.id
    assert first.status == "cart"
    assert [(h.status, h.originator_type, h.originator_id) for h in first.status_history] == [
        ("cart", "customer", customer_id),
    ]


def test_adding_the_same_variant_merges_lines(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, price="7.25", stock=10)
        await CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id=variant_id, quantity=1))
        return await CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id=variant_id, quantity=2))

    cart = run_db(scenario)
    assert [(item.quantity, item.price) for item in cart.items] == [(3, Decimal("7.25"))]
    assert cart.total_amount == Decimal("21.75")


def test_price_is_snapshotted_when_added(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, price="5.00", stock=10)
        await CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id=variant_id))

        async def reprice(tx):
            variant = await VariantRepository.get_variant(tx, variant_id, store_id)
            variant.price = Decimal("9.00")

        await in_tx(db, reprice)
        return await CartService.get_cart(db, store_id, customer_id)

    cart = run_db(scenario)
    assert cart.items[0].price == Decimal("5.00")


def test_update_and_remove_lines(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, price="2.00", stock=10)
        cart = await CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id=variant_id))
        item_id = cart.items[0].id
        updated = await CartService.update_item(db, store_id, customer_id, item_id, CartItemUpdate(quantity=4))
        quantities, total = [i.quantity for i in updated.items], updated.total_amount
        emptied = await CartService.remove_item(db, store_id, customer_id, item_id)
        return quantities, total, emptied

    quantities, total, emptied = run_db(scenario)
    assert quantities == [4]
    assert total == Decimal("8.00")
    assert emptied.items == []
    assert emptied.total_amount == Decimal("0.00")


def test_unknown_line_or_variant(store_id, customer_id):
    with pytest.raises(CartItemNotFound):
        run_db(lambda db: CartService.remove_item(db, store_id, customer_id, "missing"))
    with pytest.raises(VariantNotFound):
        run_db(lambda db: CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id="missing")))


def test_variants_are_scoped_to_their_store(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, "some-other-store", stock=5)
        await CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id=variant_id))

    with pytest.raises(VariantNotFound):
        run_db(scenario)


def test_placed_order_lines_are_out_of_reach(store_id, customer_id):
    async def scenario(db):
        variant_id = await create_variant(db, store_id, stock=5)
        cart = await CartService.add_item(db, store_id, customer_id, CartItemCreate(variant_id=variant_id))
        item_id = cart.items[0].id
        await place_order(db, store_id, customer_id)
        await CartService.update_item(db, store_id, customer_id, item_id, CartItemUpdate(quantity=5))

    with pytest.raises(CartItemNotFound):
        run_db(scenario)


def test_variants_are_listed_per_store(store_id):
    async def scenario(db):
        await create_variant(db, store_id, price="3.10", name="Blue")
        return await VariantRepository.list_variants(db, store_id)

    variants = run_db(scenario)
    assert [(v.name, v.price) for v in variants] == [("Blue", Decimal("3.10"))]
    assert all(isinstance(v, Variant) for v in variants)
