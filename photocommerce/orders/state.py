"""Machines à états d'une commande (statut et statut de paiement).

Fonctions pures: elles reçoivent la commande observée et renvoient les
colonnes à modifier. L'écriture (compare-and-set) est faite par le ledger.
"""
from typing import Any, Dict, Optional, Tuple

from photocommerce.domain.errors import InvalidTransition
from photocommerce.domain.types import (
    Effect,
    Order,
    OrderStatus,
    PaymentOutcome,
    PaymentStatus,
)

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

STATUS_EDGES = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Arêtes autorisées pour une saisie manuelle (commandes en espèces uniquement)
MANUAL_PAYMENT_EDGES = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

# Puits pour les changements pilotés par les fournisseurs
SETTLED_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED})


def plan_status_change(order: Order, target: OrderStatus, now: str) -> Dict[str, Any]:
    current = order.status
    if current == target:
        raise InvalidTransition("status", current.value, target.value, reason="already_in_state")
    if current in TERMINAL_STATUSES:
        raise InvalidTransition("status", current.value, target.value, reason="terminal_state")
    if target not in STATUS_EDGES[current]:
        raise InvalidTransition("status", current.value, target.value)

    changes: Dict[str, Any] = {"status": target.value}
    if target == OrderStatus.PROCESSING:
        changes["processed_at"] = now
    elif target == OrderStatus.COMPLETED:
        changes["completed_at"] = now
        if not order.processed_at:
            changes["processed_at"] = now
    return changes


def plan_manual_payment_change(order: Order, target: PaymentStatus) -> Dict[str, Any]:
    current = order.payment_status
    if current == target:
        raise InvalidTransition("payment_status", current.value, target.value, reason="already_in_state")
    allowed = MANUAL_PAYMENT_EDGES[current]
    if not allowed:
        raise InvalidTransition("payment_status", current.value, target.value, reason="terminal_state")
    if target not in allowed:
        raise InvalidTransition("payment_status", current.value, target.value)
    return {"payment_status": target.value}


def plan_payment_outcome(order: Order, outcome: PaymentOutcome, now: str) -> Tuple[Effect, Dict[str, Any]]:
    """
    Effet d'une issue fournisseur sur la commande observée:
    - confirmed: pending|failed -> paid; statut pending -> processing (+ processed_at)
    - failed/cancelled: pending -> failed; failed -> failed sans changement
    - toute issue sur paid/refunded: conflit, commande inchangée
    Le double encaissement (confirmed sur paid via une autre transaction) est un conflit.
    """
    current = order.payment_status
    if current in SETTLED_PAYMENT_STATUSES:
        return Effect.CONFLICT, {}

    if outcome == PaymentOutcome.CONFIRMED:
        changes: Dict[str, Any] = {"payment_status": PaymentStatus.PAID.value}
        if order.status == OrderStatus.PENDING:
            changes["status"] = OrderStatus.PROCESSING.value
            changes["processed_at"] = now
        return Effect.CONFIRMED, changes

    if current == PaymentStatus.FAILED:
        return Effect.FAILED, {}
    return Effect.FAILED, {"payment_status": PaymentStatus.FAILED.value}


def expected_state(order: Order) -> Tuple[str, str]:
    return order.status.value, order.payment_status.value


def describe(order: Optional[Order]) -> str:
    if order is None:
        return "-"
    return f"{order.status.value}/{order.payment_status.value}"
