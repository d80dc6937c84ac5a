# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.api_client import get_api_client
from app.core.config import get_settings
from app.core.state import ShopperStateRegistry

# Routers
from app.routers.products import router as products_router
from app.routers.cart import router as cart_router
from app.routers.wishlist import router as wishlist_router
from app.routers.checkout import router as checkout_router
from app.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create the per-shopper state registry.

    Shutdown:
      - Close the upstream HTTP connection pool.
    """
    app.state.registry = ShopperStateRegistry()
    logger.info(f"🛒 Startup: storefront engine ready, upstream {settings.COMMERCE_API_URL}")
    yield
    get_api_client().close()
    logger.info("👋 Shutdown: upstream client closed.")


app = FastAPI(
    title=settings.PROJECT_NAME or "Storefront Checkout API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(wishlist_router, prefix=settings.API_V1_STR)
app.include_router(checkout_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "storefront-checkout"}
