# storefront/api/__init__.py
from fastapi import FastAPI
from storefront.api.routers import auth, carts, checkout, health, orders, webhooks


def create_app() -> FastAPI:
    app = FastAPI(title="Dezora Luxe Storefront", version="1.0.0")

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(webhooks.router)
    return app
