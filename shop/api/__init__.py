# shop/api/__init__.py
from fastapi import FastAPI

from shop.api.routers import carts, orders, health


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shop Service",
        version="1.0.0",
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)

    return app
