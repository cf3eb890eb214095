"""Codes d'erreur du domaine (tarification, ledger des commandes, paiements).

Chaque erreur porte un code stable, un message sans identifiant interne
(affichable au client) et le statut HTTP utilisé par le gestionnaire
d'exceptions de l'application.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Codes d'erreur du domaine."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SELECTION = "INVALID_SELECTION"
    UNSUPPORTED_PAYMENT_METHOD = "UNSUPPORTED_PAYMENT_METHOD"
    VERIFICATION_ERROR = "VERIFICATION_ERROR"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    UNKNOWN_ORDER = "UNKNOWN_ORDER"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT = "CONFLICT"
    TRANSIENT_STORE_ERROR = "TRANSIENT_STORE_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"


class DomainError(Exception):
    """Erreur de base avec code et message sans détail interne."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    status_code: int = 400
    default_message: str = "Requête invalide"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code.value, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DomainError):
    """Entrée mal formée, rejetée avant toute I/O."""

    code = ErrorCode.VALIDATION_ERROR
    default_message = "Requête invalide"


class InvalidSelection(DomainError):
    """Photos absentes ou étrangères à la séance / au studio."""

    code = ErrorCode.INVALID_SELECTION
    default_message = "Certaines photos n'appartiennent pas à cette séance"


class UnsupportedPaymentMethod(DomainError):
    code = ErrorCode.UNSUPPORTED_PAYMENT_METHOD
    default_message = "Moyen de paiement non supporté"


class VerificationError(DomainError):
    """Notification de paiement non authentique: jamais transmise à la réconciliation."""

    code = ErrorCode.VERIFICATION_ERROR
    default_message = "Notification de paiement invalide"


class InvalidSignature(VerificationError):
    code = ErrorCode.INVALID_SIGNATURE
    default_message = "Signature invalide"


class UnknownOrder(VerificationError):
    code = ErrorCode.UNKNOWN_ORDER
    default_message = "Commande introuvable"

    def __init__(self, order_ref: str) -> None:
        super().__init__()
        self.order_ref = order_ref


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND
    status_code = 404
    default_message = "Ressource introuvable"


class Forbidden(DomainError):
    code = ErrorCode.FORBIDDEN
    status_code = 403
    default_message = "Accès interdit"


class InvalidTransition(DomainError):
    """Arête interdite de la machine à états (y compris depuis un état terminal)."""

    code = ErrorCode.INVALID_TRANSITION
    status_code = 409
    default_message = "Transition de statut interdite"

    def __init__(self, field: str, current: str, target: str, reason: str = "illegal_transition") -> None:
        super().__init__(
            message=f"Transition {field} interdite: {current} -> {target}",
            details={"field": field, "current": current, "target": target, "reason": reason},
        )
        self.field = field
        self.current = current
        self.target = target
        self.reason = reason


class Conflict(DomainError):
    """Résultat de paiement contradictoire sur une commande déjà réglée (revue manuelle)."""

    code = ErrorCode.CONFLICT
    status_code = 409
    default_message = "Conflit sur l'état de paiement"

    def __init__(self, payment_status: str, outcome: str) -> None:
        super().__init__(details={"paymentStatus": payment_status, "outcome": outcome})
        self.payment_status = payment_status
        self.outcome = outcome


class TransientStoreError(DomainError):
    """Stockage indisponible: l'appelant peut réessayer."""

    code = ErrorCode.TRANSIENT_STORE_ERROR
    status_code = 503
    default_message = "Service temporairement indisponible"


class ProviderError(DomainError):
    """Erreur renvoyée par l'API d'un fournisseur de paiement (création de session)."""

    code = ErrorCode.PROVIDER_ERROR
    status_code = 502
    default_message = "Erreur du fournisseur de paiement"
