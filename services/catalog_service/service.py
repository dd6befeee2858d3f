from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import run_in_transaction
from shared.security import AdminSession
from services.stock_service.ledger import Originator, StockLedger

from .models import Variant
from .repository import VariantRepository
from .schemas import VariantCreate

ledger = StockLedger()


class CatalogService:

    @staticmethod
    async def create_variant(db: AsyncSession, store_id: str, data: VariantCreate, admin: AdminSession) -> Variant:
        """Creates the variant together with its stock item so it is immediately sellable."""
        async def work(tx: AsyncSession):
            variant = await VariantRepository.create_variant(tx, Variant(
                store_id=store_id,
                product_name=data.product_name,
                name=data.name,
                price=data.price,
            ))
            await ledger.open_stock_item(tx, variant.id, store_id, data.initial_stock, Originator.admin(admin.user_id))
            return variant

        return await run_in_transaction(db, work)

    @staticmethod
    async def list_variants(db: AsyncSession, store_id: str) -> list[Variant]:
        return await VariantRepository.list_variants(db, store_id)
