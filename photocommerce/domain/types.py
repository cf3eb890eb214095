"""Types du domaine: commandes, politiques tarifaires, événements de paiement.

Objets purs, sans règle d'entrée API (les modèles pydantic sont dans
orders/views.py, pricing/views.py et payments/views.py).
Les montants sont toujours des Decimal à 2 décimales.
"""

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Convertit une valeur (str, int, float JSON, Decimal) en Decimal arrondi au centime."""
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value if value is not None else "0"))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    ROBOKASSA = "robokassa"
    TINKOFF = "tinkoff"


class PaymentOutcome(str, Enum):
    """Issue normalisée d'une notification fournisseur."""

    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Effect(str, Enum):
    """Effet enregistré dans l'IdempotencyRecord."""

    CONFIRMED = "confirmed"
    FAILED = "failed"
    CONFLICT = "conflict"


class ReconciliationOutcome(str, Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    DUPLICATE_IGNORED = "duplicate_ignored"
    REJECTED = "rejected"


STAFF_ROLES = frozenset({"admin", "studio-admin", "photographer"})


@dataclass(frozen=True)
class Actor:
    """Appelant authentifié: rôle et studio issus de la session vérifiée uniquement."""

    user_id: str
    role: str
    tenant_id: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True)
class GuestContact:
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class PricingPolicy:
    studio_id: str
    price_per_unit: Decimal
    bulk_discount_threshold: int = 0
    bulk_discount_percent: Decimal = Decimal("0")
    currency: str = "RUB"
    id: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PricingPolicy":
        return cls(
            id=str(row.get("id")) if row.get("id") is not None else None,
            studio_id=str(row.get("studio_id") or ""),
            price_per_unit=to_money(row.get("price_per_unit")),
            bulk_discount_threshold=int(row.get("bulk_discount_threshold") or 0),
            bulk_discount_percent=Decimal(str(row.get("bulk_discount_percent") or "0")),
            currency=row.get("currency") or "RUB",
            is_active=bool(row.get("is_active", True)),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studioId": self.studio_id,
            "pricePerUnit": str(self.price_per_unit),
            "bulkDiscountThreshold": self.bulk_discount_threshold,
            "bulkDiscountPercent": str(self.bulk_discount_percent),
            "currency": self.currency,
            "isActive": self.is_active,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class OrderItem:
    photo_id: str
    price: Decimal
    id: Optional[str] = None
    order_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderItem":
        return cls(
            id=str(row.get("id")) if row.get("id") is not None else None,
            order_id=str(row.get("order_id")) if row.get("order_id") is not None else None,
            photo_id=str(row.get("photo_id") or ""),
            price=to_money(row.get("price")),
        )


@dataclass(frozen=True)
class Order:
    """Représentation domaine d'une commande (lignes orders + order_items)."""

    id: str
    studio_id: str
    session_id: str
    guest_email: str
    payment_method: PaymentMethod
    total_amount: Decimal
    discount: Decimal
    final_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    created_at: Optional[str] = None
    processed_at: Optional[str] = None
    completed_at: Optional[str] = None
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.total_amount < 0 or self.discount < 0 or self.final_amount < 0:
            raise ValueError("Order amounts cannot be negative")
        if self.final_amount != self.total_amount - self.discount:
            raise ValueError("final_amount must equal total_amount - discount")

    @classmethod
    def from_row(cls, row: Dict[str, Any], items: Optional[list] = None) -> "Order":
        raw_items = items if items is not None else (row.get("order_items") or [])
        return cls(
            id=str(row["id"]),
            studio_id=str(row.get("studio_id") or ""),
            session_id=str(row.get("session_id") or ""),
            guest_email=row.get("guest_email") or "",
            guest_name=row.get("guest_name"),
            guest_phone=row.get("guest_phone"),
            payment_method=PaymentMethod(row.get("payment_method")),
            total_amount=to_money(row.get("total_amount")),
            discount=to_money(row.get("discount")),
            final_amount=to_money(row.get("final_amount")),
            status=OrderStatus(row.get("status") or "pending"),
            payment_status=PaymentStatus(row.get("payment_status") or "pending"),
            created_at=row.get("created_at"),
            processed_at=row.get("processed_at"),
            completed_at=row.get("completed_at"),
            items=tuple(OrderItem.from_row(i) for i in raw_items),
        )

    def with_changes(self, changes: Dict[str, Any]) -> "Order":
        """Copie avec les colonnes modifiées (statuts, horodatages)."""
        values: Dict[str, Any] = {}
        for key, value in changes.items():
            if key == "status":
                value = OrderStatus(value)
            elif key == "payment_status":
                value = PaymentStatus(value)
            values[key] = value
        return replace(self, **values)

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studio_id": self.studio_id,
            "session_id": self.session_id,
            "guest_email": self.guest_email,
            "guest_name": self.guest_name,
            "guest_phone": self.guest_phone,
            "payment_method": self.payment_method.value,
            "total_amount": str(self.total_amount),
            "discount": str(self.discount),
            "final_amount": str(self.final_amount),
            "status": self.status.value,
            "payment_status": self.payment_status.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "guestEmail": self.guest_email,
            "guestName": self.guest_name,
            "guestPhone": self.guest_phone,
            "paymentMethod": self.payment_method.value,
            "totalAmount": str(self.total_amount),
            "discount": str(self.discount),
            "finalAmount": str(self.final_amount),
            "status": self.status.value,
            "paymentStatus": self.payment_status.value,
            "createdAt": self.created_at,
            "processedAt": self.processed_at,
            "completedAt": self.completed_at,
            "items": [{"photoId": i.photo_id, "price": str(i.price)} for i in self.items],
        }


@dataclass(frozen=True)
class IdempotencyKey:
    provider_name: str
    provider_transaction_id: str

    def __str__(self) -> str:
        return f"{self.provider_name}:{self.provider_transaction_id}"


@dataclass(frozen=True)
class PaymentEvent:
    """Événement canonique, construit uniquement par un vérificateur."""

    order_id: str
    provider_name: str
    provider_transaction_id: str
    outcome: PaymentOutcome
    raw_signature_valid: bool
    amount: Optional[Decimal] = None

    @property
    def idempotency_key(self) -> IdempotencyKey:
        return IdempotencyKey(self.provider_name, self.provider_transaction_id)


@dataclass(frozen=True)
class IdempotencyRecord:
    provider_name: str
    provider_transaction_id: str
    order_id: str
    outcome: PaymentOutcome
    effect: Effect
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "IdempotencyRecord":
        return cls(
            provider_name=row["provider_name"],
            provider_transaction_id=str(row["provider_transaction_id"]),
            order_id=str(row.get("order_id") or ""),
            outcome=PaymentOutcome(row["outcome"]),
            effect=Effect(row["effect"]),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "providerName": self.provider_name,
            "providerTransactionId": self.provider_transaction_id,
            "orderId": self.order_id,
            "outcome": self.outcome.value,
            "effect": self.effect.value,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class AppliedResult:
    """Résultat de OrderLedger.apply_payment_outcome."""

    effect: Optional[Effect]
    order: Optional[Order]
    duplicate: bool = False
