import asyncio
import os
import tempfile
import uuid

# Settings are read at import time, so the environment has to be in place first
_DB_DIR = tempfile.mkdtemp(prefix="storefront-orders-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["DB_POOL_DISABLED"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RBAC_URL"] = ""
os.environ["ORDER_WEBHOOK_URL"] = ""
os.environ["OTLP_ENDPOINT"] = ""

import pytest
from fastapi.testclient import TestClient

import main
from shared.config import settings
from shared.config.database import AsyncSessionLocal, Base, engine, run_in_transaction
from shared.security import AdminSession, create_admin_token, create_customer_token
from services.cart_service.schemas import CartItemCreate
from services.cart_service.service import CartService
from services.catalog_service.schemas import VariantCreate
from services.catalog_service.service import CatalogService
from services.checkout_service.schemas import CheckoutRequest
from services.checkout_service.service import CheckoutOrchestrator
from services.stock_service.repository import StockRepository

SHIPPING = {
    "payment_method": "card",
    "phone": "555-0100",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
}

ADMIN = AdminSession(user_id="admin-1", stores={})


def run_db(scenario):
    """Runs `scenario(db)` on a fresh session in its own event loop."""
    async def runner():
        async with AsyncSessionLocal() as db:
            return await scenario(db)

    return asyncio.run(runner())


async def create_variant(db, store_id, price="10.00", stock=0, name="Default") -> str:
    variant = await CatalogService.create_variant(
        db, store_id, VariantCreate(product_name="T-Shirt", name=name, price=price, initial_stock=stock), ADMIN
    )
    return variant.id


async def fill_cart(db, store_id, customer_id, *lines) -> str:
    """Adds (variant_id, quantity) lines and returns the cart id."""
    cart = await CartService.get_cart(db, store_id, customer_id)
    for variant_id, quantity in lines:
        cart = await CartService.add_item(
            db, store_id, customer_id, CartItemCreate(variant_id=variant_id, quantity=quantity)
        )
    return cart.id


async def place_order(db, store_id, customer_id, **overrides) -> str:
    data = CheckoutRequest(**{**SHIPPING, **overrides})
    order = await CheckoutOrchestrator().checkout(db, customer_id, store_id, data)
    return order.id


async def stock_levels(db, store_id, variant_id) -> tuple[int, int]:
    item = await StockRepository.get_stock_item(db, variant_id, store_id)
    await db.refresh(item)
    return item.count, item.reserved


async def in_tx(db, work):
    return await run_in_transaction(db, work)


def overrun_checkout(monkeypatch):
    """Bounds checkout at 0.1s and makes its last step, opening the next cart, overrun it."""
    open_cart = CartService.open_cart

    async def slow(*args, **kwargs):
        await asyncio.sleep(1)
        return await open_cart(*args, **kwargs)

    monkeypatch.setattr(settings, "CHECKOUT_TIMEOUT_SECONDS", 0.1)
    monkeypatch.setattr(CartService, "open_cart", staticmethod(slow))


@pytest.fixture(scope="session", autouse=True)
def schema():
    async def create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create())
    yield


@pytest.fixture
def store_id():
    return f"store-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def customer_id():
    return f"cust-{uuid.uuid4().hex[:8]}"


@pytest.fixture(scope="session")
def client():
    with TestClient(main.app) as c:
        yield c


@pytest.fixture
def admin_headers(store_id):
    token = create_admin_token("admin-1", stores={store_id: "*"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers(store_id, customer_id):
    token = create_customer_token(customer_id, store_id)
    return {"Authorization": f"Bearer {token}"}
