from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.core.config import get_settings
from app.core.lifespan import lifespan
from app.core.logging import configure_logging
from app.api.v1.routers.health import router as health_router
from app.api.v1.routers.assistant import router as assistant_router
from app.api.v1.routers.inventory import router as inventory_router
from app.api.v1.routers.analytics import router as analytics_router
from app.api.v1.routers.carts import router as carts_router
from app.api.v1.routers.stores import router as stores_router

settings = get_settings()
configure_logging(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    colored=settings.APP_ENV == "development",
)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://shop.example.com,https://kiosk.example.com"
# allow_credentials=True with "*" is rejected by browsers, so origins stay explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["content-type", "x-store-id", "x-user-id"],
    max_age=86400,
)

# ------- Routes -------
app.include_router(health_router)
app.include_router(assistant_router)     # text + audio turns, conversations
app.include_router(inventory_router)     # direct candidate search
app.include_router(analytics_router)     # turn log aggregates
app.include_router(carts_router)         # current cart, lines built from inventory
app.include_router(stores_router)        # store policy read/update
