"""
Registre central des routers (API v1 et health).
- cart: panier et lot
- payments: checkout, callback du widget, webhook Stripe
- orders: historique, détail, relance de paiement
"""
from fastapi import FastAPI

from catering.cart import views as cart_views
from catering.health.router import router as health_router
from catering.orders import views as orders_views
from catering.payments import views as payments_views

def register_routers(app: FastAPI) -> None:
    app.include_router(cart_views.router)
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
