"""Tinkoff (fournisseur B).

Jeton: pour chaque champ scalaire de premier niveau sauf Token, trié par clé,
concaténer clé + valeur (booléens en minuscules), puis SHA-256(chaîne + secret).
- TinkoffVerifier: vérifie les notifications JSON (jeton, terminal, commande)
- create_payment_session: appel Init (httpx) pour obtenir l'URL de paiement
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Mapping, Optional
import hashlib
import hmac
import logging

import httpx

from photocommerce.domain.errors import (
    InvalidSignature,
    ProviderError,
    UnknownOrder,
    ValidationError,
    VerificationError,
)
from photocommerce.domain.types import (
    Order,
    PaymentEvent,
    PaymentMethod,
    PaymentOutcome,
    PaymentStatus,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "tinkoff"

STATUS_OUTCOMES = {
    "REJECTED": PaymentOutcome.FAILED,
    "CANCELED": PaymentOutcome.CANCELLED,
    "REVERSED": PaymentOutcome.CANCELLED,
}


def _token_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_token(data: Mapping[str, Any], secret_key: str) -> str:
    parts = [
        f"{key}{_token_value(value)}"
        for key, value in sorted(data.items())
        if key != "Token" and value is not None and not isinstance(value, (dict, list))
    ]
    return hashlib.sha256(("".join(parts) + secret_key).encode("utf-8")).hexdigest()


def to_kopecks(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


class TinkoffVerifier:
    """Vérificateur sans état, construit une fois au démarrage."""

    provider_name = PROVIDER_NAME

    def __init__(self, terminal_key: str, secret_key: str, find_order: Callable[[str], Optional[Order]]):
        self.terminal_key = terminal_key
        self.secret_key = secret_key
        self.find_order = find_order

    def verify(self, payload: Mapping[str, Any]) -> Optional[PaymentEvent]:
        """
        Renvoie l'événement canonique, ou None pour un statut intermédiaire
        (NEW, AUTHORIZED, ...) qui est acquitté sans réconciliation.
        """
        if not isinstance(payload, Mapping):
            raise VerificationError("Notification Tinkoff mal formée")
        received = str(payload.get("Token") or "")
        order_ref = str(payload.get("OrderId") or "").strip()
        payment_id = str(payload.get("PaymentId") or "").strip()
        if not received or not order_ref or not payment_id:
            raise VerificationError("Paramètres Tinkoff manquants")
        if not self.secret_key:
            logger.error("payments.tinkoff secret non configuré")
            raise InvalidSignature()

        expected = build_token(payload, self.secret_key)
        if not hmac.compare_digest(expected.lower(), received.lower()):
            logger.warning("payments.tinkoff invalid token order_ref=%s payment_id=%s", order_ref, payment_id)
            raise InvalidSignature()
        if self.terminal_key and payload.get("TerminalKey") != self.terminal_key:
            logger.warning("payments.tinkoff terminal mismatch order_ref=%s", order_ref)
            raise VerificationError("Terminal inconnu")

        order = self.find_order(order_ref)
        if order is None or order.payment_method != PaymentMethod.TINKOFF:
            logger.warning("payments.tinkoff unknown order order_ref=%s", order_ref)
            raise UnknownOrder(order_ref)

        status = str(payload.get("Status") or "").upper()
        success = payload.get("Success") is True or str(payload.get("Success")).lower() == "true"
        if status == "CONFIRMED" and success:
            outcome = PaymentOutcome.CONFIRMED
        elif status in STATUS_OUTCOMES:
            outcome = STATUS_OUTCOMES[status]
        else:
            logger.info("payments.tinkoff status=%s acknowledged order_id=%s", status or "-", order.id)
            return None

        amount: Optional[Decimal] = None
        try:
            amount = (Decimal(str(payload.get("Amount"))) / 100).quantize(Decimal("0.01"))
        except (InvalidOperation, TypeError):
            amount = None

        return PaymentEvent(
            order_id=order.id,
            provider_name=PROVIDER_NAME,
            provider_transaction_id=payment_id,
            outcome=outcome,
            raw_signature_valid=True,
            amount=amount,
        )


def build_init_request(order: Order, terminal_key: str, secret_key: str, base_url: str) -> Dict[str, Any]:
    """Corps de la requête Init, reçu fiscal inclus (montants en kopecks)."""
    receipt = {
        "Email": order.guest_email,
        "Taxation": "osn",
        "Items": [
            {
                "Name": f"Photo {item.photo_id[:8]}",
                "Price": to_kopecks(item.price),
                "Quantity": 1,
                "Amount": to_kopecks(item.price),
                "Tax": "none",
            }
            for item in order.items
        ],
    }
    base = base_url.rstrip("/")
    data: Dict[str, Any] = {
        "TerminalKey": terminal_key,
        "Amount": to_kopecks(order.final_amount),
        "OrderId": order.id,
        "Description": f"Payment for order #{order.id[:8]}",
        "SuccessURL": f"{base}/payment/success?orderId={order.id}",
        "FailURL": f"{base}/payment/cancelled?orderId={order.id}",
        "NotificationURL": f"{base}/api/v1/payments/tinkoff/notification",
    }
    data["Token"] = build_token(data, secret_key)
    data["Receipt"] = receipt
    return data


def create_payment_session(
    order: Order,
    terminal_key: str,
    secret_key: str,
    api_url: str,
    base_url: str,
    timeout: float = 10,
) -> Dict[str, Any]:
    """
    Initialise un paiement Tinkoff pour une commande tinkoff encore payable.
    Retour: {"sessionId": PaymentId, "url": PaymentURL, "orderId": ...}
    """
    if order.payment_method != PaymentMethod.TINKOFF:
        raise ValidationError("Commande non payable par Tinkoff")
    if order.payment_status not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
        raise ValidationError("Commande déjà réglée")
    if not terminal_key or not secret_key:
        logger.error("payments.tinkoff terminal non configuré")
        raise ProviderError()

    body = build_init_request(order, terminal_key, secret_key, base_url)
    try:
        resp = httpx.post(api_url, json=body, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.exception("payments.tinkoff init failed order_id=%s", order.id)
        raise ProviderError() from exc

    if str(data.get("ErrorCode", "0")) != "0" or not data.get("Success", True):
        logger.warning(
            "payments.tinkoff init rejected order_id=%s error_code=%s details=%s",
            order.id, data.get("ErrorCode"), data.get("Details"),
        )
        raise ProviderError(data.get("Message") or "Impossible de créer la session de paiement")

    return {
        "sessionId": str(data.get("PaymentId") or ""),
        "url": data.get("PaymentURL"),
        "orderId": order.id,
    }
