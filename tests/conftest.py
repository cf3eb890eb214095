import os
import threading
from dataclasses import replace
import uuid
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from photocommerce.app_setup import services
from photocommerce.app_setup.factory import create_app
from photocommerce.domain.errors import TransientStoreError
from photocommerce.domain.types import Actor, GuestContact, IdempotencyRecord, Order, PricingPolicy
from photocommerce.notifications.emitter import NotificationEmitter, build_notification
from photocommerce.orders.repository import APPLIED, DUPLICATE, STALE, OrderStore
from photocommerce.orders.service import OrderLedger
from photocommerce.payments.reconciliation import ReconciliationEngine
from photocommerce.payments.repository import IdempotencyStore
from photocommerce.payments.robokassa import RobokassaVerifier
from photocommerce.payments.tinkoff import TinkoffVerifier
from photocommerce.pricing.repository import PricingStore
from photocommerce.pricing.service import PricingService
from photocommerce.utils.security import get_current_actor

ROBOKASSA_PASSWORD_2 = "rk-pass-2"
TINKOFF_TERMINAL = "TestTerminal"
TINKOFF_SECRET = "tk-secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


# --- Stores en mémoire (mêmes garanties atomiques que les fonctions SQL) ---

class InMemoryOrderStore(OrderStore):
    def __init__(self):
        self.lock = threading.Lock()
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.photos: Dict[str, str] = {}
        self.orders: Dict[str, Order] = {}
        self.records: Dict[tuple, Dict[str, Any]] = {}
        self.unavailable = False
        self.force_stale = 0

    def _check(self):
        if self.unavailable:
            raise TransientStoreError()

    def add_session(self, studio_id: str, photo_count: int):
        session_id = str(uuid.uuid4())
        self.sessions[session_id] = {"id": session_id, "studio_id": studio_id}
        photo_ids = [str(uuid.uuid4()) for _ in range(photo_count)]
        for pid in photo_ids:
            self.photos[pid] = session_id
        return session_id, photo_ids

    def get_session(self, session_id):
        self._check()
        return self.sessions.get(session_id)

    def get_session_photo_ids(self, session_id, photo_ids):
        self._check()
        return {p for p in photo_ids if self.photos.get(p) == session_id}

    def insert_order(self, order, items):
        self._check()
        with self.lock:
            order_id = str(uuid.uuid4())
            row = dict(order, id=order_id, created_at="2026-01-01T00:00:00+00:00")
            item_rows = [dict(i, id=str(uuid.uuid4()), order_id=order_id) for i in items]
            created = Order.from_row(row, items=item_rows)
            self.orders[order_id] = created
            return created

    def get_order(self, order_id):
        self._check()
        return self.orders.get(order_id)

    def list_orders(self, studio_id, status=None, payment_status=None, limit=100):
        self._check()
        found = [
            o for o in self.orders.values()
            if o.studio_id == studio_id
            and (status is None or o.status.value == status)
            and (payment_status is None or o.payment_status.value == payment_status)
        ]
        return found[:limit]

    def compare_and_set(self, order_id, expected, changes):
        self._check()
        with self.lock:
            order = self.orders[order_id]
            if self.force_stale:
                self.force_stale -= 1
                return None
            if (order.status.value, order.payment_status.value) != tuple(expected):
                return None
            updated = order.with_changes(changes)
            self.orders[order_id] = updated
            return updated

    def apply_payment_transition(self, order_id, expected, key, outcome, effect, changes):
        self._check()
        with self.lock:
            order = self.orders[order_id]
            record_key = (key.provider_name, key.provider_transaction_id)
            if record_key in self.records:
                return DUPLICATE, None
            if self.force_stale:
                self.force_stale -= 1
                return STALE, None
            if (order.status.value, order.payment_status.value) != tuple(expected):
                return STALE, None
            self.records[record_key] = {
                "provider_name": key.provider_name,
                "provider_transaction_id": key.provider_transaction_id,
                "order_id": order_id,
                "studio_id": order.studio_id,
                "outcome": outcome.value,
                "effect": effect.value,
                "created_at": "2026-01-01T00:00:00+00:00",
            }
            if changes:
                order = order.with_changes(changes)
                self.orders[order_id] = order
            return APPLIED, order


class InMemoryIdempotencyStore(IdempotencyStore):
    def __init__(self, orders: InMemoryOrderStore):
        self.orders = orders

    def get_record(self, key):
        self.orders._check()
        row = self.orders.records.get((key.provider_name, key.provider_transaction_id))
        return IdempotencyRecord.from_row(row) if row else None

    def list_conflicts(self, studio_id, limit=100):
        rows = [
            r for r in self.orders.records.values()
            if r["studio_id"] == studio_id and r["effect"] == "conflict"
        ]
        return [IdempotencyRecord.from_row(r) for r in rows[:limit]]


class InMemoryPricingStore(PricingStore):
    def __init__(self):
        self.policies: List[PricingPolicy] = []

    def get_active_policy(self, studio_id):
        for p in self.policies:
            if p.studio_id == studio_id and p.is_active:
                return p
        return None

    def replace_active_policy(self, studio_id, values):
        self.policies = [
            replace(p, is_active=False) if p.studio_id == studio_id else p
            for p in self.policies
        ]
        policy = PricingPolicy(
            id=str(uuid.uuid4()),
            studio_id=studio_id,
            price_per_unit=Decimal(values["price_per_unit"]),
            bulk_discount_threshold=values["bulk_discount_threshold"],
            bulk_discount_percent=Decimal(values["bulk_discount_percent"]),
            currency=values["currency"],
        )
        self.policies.append(policy)
        return policy


class RecordingEmitter(NotificationEmitter):
    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def emit(self, event_type, order, extra=None):
        self.events.append(build_notification(event_type, order, extra))

    def types(self):
        return [e["type"] for e in self.events]


# --- Fixtures du cœur ---

@pytest.fixture
def studio_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def core(studio_id):
    orders = InMemoryOrderStore()
    pricing_store = InMemoryPricingStore()
    emitter = RecordingEmitter()
    pricing = PricingService(pricing_store)
    ledger = OrderLedger(orders, pricing, emitter, max_attempts=3, clock=lambda: "2026-01-02T10:00:00+00:00")
    idempotency = InMemoryIdempotencyStore(orders)
    return SimpleNamespace(
        studio_id=studio_id,
        orders=orders,
        pricing_store=pricing_store,
        emitter=emitter,
        pricing=pricing,
        ledger=ledger,
        idempotency=idempotency,
        engine=ReconciliationEngine(ledger, idempotency, emitter),
        robokassa=RobokassaVerifier(ROBOKASSA_PASSWORD_2, ledger.find_order),
        tinkoff=TinkoffVerifier(TINKOFF_TERMINAL, TINKOFF_SECRET, ledger.find_order),
    )


@pytest.fixture
def make_order(core):
    """Crée une commande pending/pending de N photos dans le studio du cœur."""
    def _make(method: str = "robokassa", photo_count: int = 3, studio: Optional[str] = None) -> Order:
        session_id, photo_ids = core.orders.add_session(studio or core.studio_id, photo_count)
        return core.ledger.create_order(
            session_id, GuestContact(email="guest@example.com", name="Guest"), photo_ids, method,
        )
    return _make


@pytest.fixture
def staff(studio_id) -> Actor:
    return Actor(user_id="staff-1", role="studio-admin", tenant_id=studio_id, email="admin@studio.test")


# --- Application HTTP ---

@pytest.fixture
def app(core, staff):
    application = create_app()
    application.dependency_overrides[services.get_ledger] = lambda: core.ledger
    application.dependency_overrides[services.get_pricing] = lambda: core.pricing
    application.dependency_overrides[services.get_idempotency] = lambda: core.idempotency
    application.dependency_overrides[services.get_reconciliation] = lambda: core.engine
    application.dependency_overrides[services.get_robokassa_verifier] = lambda: core.robokassa
    application.dependency_overrides[services.get_tinkoff_verifier] = lambda: core.tinkoff
    application.dependency_overrides[get_current_actor] = lambda: staff
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
