from photocommerce.domain.types import (
    Actor,
    AppliedResult,
    Effect,
    GuestContact,
    IdempotencyKey,
    IdempotencyRecord,
    Order,
    OrderItem,
    OrderStatus,
    PaymentEvent,
    PaymentMethod,
    PaymentOutcome,
    PaymentStatus,
    PricingPolicy,
    ReconciliationOutcome,
    to_money,
)

__all__ = [
    "Actor",
    "AppliedResult",
    "Effect",
    "GuestContact",
    "IdempotencyKey",
    "IdempotencyRecord",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentEvent",
    "PaymentMethod",
    "PaymentOutcome",
    "PaymentStatus",
    "PricingPolicy",
    "ReconciliationOutcome",
    "to_money",
]
