from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.health import router as health_router
from storefront.api.routes_admin import router as admin_router
from storefront.api.routes_cart import router as cart_router
from storefront.api.routes_inventory import router as inventory_router
from storefront.api.routes_order import router as order_router
from storefront.api.routes_webhook import router as webhook_router
from storefront.config import settings
from storefront.db import init_db
from storefront.jobs.reconcile import reconcile_job
from storefront.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    configure_logging(settings.LOG_LEVEL)
    init_db()

    scheduler = None
    if settings.RECONCILE_INTERVAL_SECONDS > 0:
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            reconcile_job,
            "interval",
            seconds=settings.RECONCILE_INTERVAL_SECONDS,
            id="reconcile_leftover_carts",
        )
        scheduler.start()

    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)


app = FastAPI(title="Storefront - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(cart_router, tags=["cart"])

app.include_router(inventory_router, tags=["inventory"])

app.include_router(order_router, prefix="/api/orders", tags=["orders"])

app.include_router(admin_router, tags=["admin"])

# mounted at the root: the provider is configured with this exact path
app.include_router(webhook_router)
