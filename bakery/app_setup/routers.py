"""
Registre central des routers (API checkout, health).
"""
from fastapi import FastAPI
from bakery.checkout import views as checkout_views
from bakery.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API
    app.include_router(checkout_views.router)
    # Health & monitoring
    app.include_router(health_router)
