"""
Composition des services du cœur, construits une fois au démarrage (lifespan)
et exposés aux vues via app.state et des dépendances FastAPI.
Les tests remplacent ces dépendances (app.dependency_overrides) par des services
branchés sur des stores en mémoire.
"""
from fastapi import FastAPI, Request

from photocommerce.config import (
    LEDGER_MAX_ATTEMPTS,
    ROBOKASSA_PASSWORD_2,
    TINKOFF_SECRET_KEY,
    TINKOFF_TERMINAL_KEY,
)
from photocommerce.notifications.emitter import SupabaseNotificationEmitter
from photocommerce.orders.repository import SupabaseOrderStore
from photocommerce.orders.service import OrderLedger
from photocommerce.payments import (
    ReconciliationEngine,
    RobokassaVerifier,
    SupabaseIdempotencyStore,
    TinkoffVerifier,
)
from photocommerce.pricing.repository import SupabasePricingStore
from photocommerce.pricing.service import PricingService


def build_services(app: FastAPI) -> None:
    emitter = SupabaseNotificationEmitter()
    pricing = PricingService(SupabasePricingStore())
    ledger = OrderLedger(SupabaseOrderStore(), pricing, emitter, max_attempts=LEDGER_MAX_ATTEMPTS)
    app.state.pricing = pricing
    app.state.ledger = ledger
    app.state.idempotency = SupabaseIdempotencyStore()
    app.state.reconciliation = ReconciliationEngine(ledger, app.state.idempotency, emitter)
    app.state.robokassa_verifier = RobokassaVerifier(ROBOKASSA_PASSWORD_2, ledger.find_order)
    app.state.tinkoff_verifier = TinkoffVerifier(TINKOFF_TERMINAL_KEY, TINKOFF_SECRET_KEY, ledger.find_order)


def get_pricing(request: Request) -> PricingService:
    return request.app.state.pricing

def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger

def get_idempotency(request: Request) -> SupabaseIdempotencyStore:
    return request.app.state.idempotency

def get_reconciliation(request: Request) -> ReconciliationEngine:
    return request.app.state.reconciliation

def get_robokassa_verifier(request: Request) -> RobokassaVerifier:
    return request.app.state.robokassa_verifier

def get_tinkoff_verifier(request: Request) -> TinkoffVerifier:
    return request.app.state.tinkoff_verifier
