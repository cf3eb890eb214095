"""
Registre central des routers.
- API v1: orders (checkout, lecture, changements manuels), payments (webhooks, session Tinkoff, conflits), pricing
- Health: health_router
"""
from fastapi import FastAPI
from photocommerce.orders import views as orders_views
from photocommerce.payments import views as payments_views
from photocommerce.pricing import views as pricing_views
from photocommerce.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    app.include_router(pricing_views.router)
    # Health & monitoring
    app.include_router(health_router)
