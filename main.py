import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config import settings
from shared.config.database import Base, engine
from shared.errors import DomainError
from shared.observability import setup_observability
from shared.security import build_authorizer, limiter

# IMPORTANT: import models so they register with Base
from services.catalog_service import models as catalog_models
from services.promotion_service import models as promotion_models
from services.stock_service import models as stock_models
from services.order_service import models as order_models

from services.cart_service.router import router as cart_router
from services.catalog_service.router import router as catalog_router
from services.checkout_service.notifier import build_notifier
from services.checkout_service.router import router as checkout_router
from services.order_service.router import router as order_router, storefront_router as my_orders_router
from services.promotion_service.router import router as promotion_router, storefront_router as my_promotions_router
from services.stock_service.router import router as stock_router

logger = structlog.get_logger(__name__)


async def domain_error_handler(request: Request, exc: DomainError):
    logger.info("request_rejected", path=request.url.path, error=type(exc).__name__,
                status_code=exc.status_code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("request_failed", path=request.url.path, error=type(exc).__name__, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal error"})


def create_app() -> FastAPI:
    app = FastAPI(title="Storefront Orders", version="1.0.0")

    # --- OBSERVABILITY BOOTSTRAP ---
    setup_observability(app, settings.SERVICE_NAME)

    # --- SECURITY SETUP ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.on_event("startup")
    async def startup_event():
        app.state.authorizer = build_authorizer()
        app.state.notifier = build_notifier()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.authorizer.close()
        await app.state.notifier.close()

    @app.get("/health", include_in_schema=False)
    async def health_check():
        return {"service": settings.SERVICE_NAME, "status": "running"}

    for router in (
        order_router,
        stock_router,
        catalog_router,
        promotion_router,
        cart_router,
        checkout_router,
        my_orders_router,
        my_promotions_router,
    ):
        app.include_router(router)

    return app


app = create_app()
