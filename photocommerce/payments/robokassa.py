"""Robokassa (fournisseur A).

- build_payment_link: lien de paiement signé MD5(login:OutSum:InvId:password1)
- RobokassaVerifier: vérifie le callback ResultURL, signé MD5(OutSum:InvId:password2)
Robokassa n'appelle ResultURL qu'après un paiement réussi: l'issue est toujours confirmed.
InvId est l'identifiant de la commande; il sert aussi d'identifiant de transaction.
"""
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping, Optional
from urllib.parse import urlencode
import hashlib
import hmac
import logging

from photocommerce.domain.errors import InvalidSignature, UnknownOrder, VerificationError
from photocommerce.domain.types import Order, PaymentEvent, PaymentMethod, PaymentOutcome

logger = logging.getLogger(__name__)

PROVIDER_NAME = "robokassa"


def md5_signature(*parts: str) -> str:
    return hashlib.md5(":".join(parts).encode("utf-8")).hexdigest()


def build_payment_link(
    order: Order,
    login: str,
    password1: str,
    base_url: str,
    test_mode: bool = False,
) -> str:
    out_sum = f"{order.final_amount:.2f}"
    signature = md5_signature(login, out_sum, order.id, password1)
    params = {
        "MerchantLogin": login,
        "OutSum": out_sum,
        "InvId": order.id,
        "Description": f"Order {order.id[:8]} - {len(order.items)} photos",
        "SignatureValue": signature,
        "Email": order.guest_email,
        "Culture": "en",
        "Encoding": "utf-8",
        "IsTest": "1" if test_mode else "0",
    }
    return f"{base_url}?{urlencode(params)}"


class RobokassaVerifier:
    """Vérificateur sans état, construit une fois au démarrage."""

    provider_name = PROVIDER_NAME

    def __init__(self, password2: str, find_order: Callable[[str], Optional[Order]]):
        self.password2 = password2
        self.find_order = find_order

    def verify(self, payload: Mapping[str, str]) -> PaymentEvent:
        out_sum = str(payload.get("OutSum") or "").strip()
        inv_id = str(payload.get("InvId") or "").strip()
        received = str(payload.get("SignatureValue") or "").strip()
        if not out_sum or not inv_id or not received:
            raise VerificationError("Paramètres Robokassa manquants")
        if not self.password2:
            logger.error("payments.robokassa password2 non configuré")
            raise InvalidSignature()

        expected = md5_signature(out_sum, inv_id, self.password2)
        if not hmac.compare_digest(expected.upper(), received.upper()):
            logger.warning("payments.robokassa invalid signature inv_id=%s", inv_id)
            raise InvalidSignature()

        order = self.find_order(inv_id)
        if order is None:
            logger.warning("payments.robokassa unknown order inv_id=%s", inv_id)
            raise UnknownOrder(inv_id)
        if order.payment_method != PaymentMethod.ROBOKASSA:
            logger.warning("payments.robokassa order not payable by robokassa inv_id=%s", inv_id)
            raise UnknownOrder(inv_id)

        amount: Optional[Decimal] = None
        try:
            amount = Decimal(out_sum)
        except InvalidOperation:
            logger.warning("payments.robokassa unparsable OutSum=%s inv_id=%s", out_sum, inv_id)
        if amount is not None and amount != order.final_amount:
            logger.warning(
                "payments.robokassa amount mismatch inv_id=%s out_sum=%s expected=%s",
                inv_id, out_sum, order.final_amount,
            )

        return PaymentEvent(
            order_id=order.id,
            provider_name=PROVIDER_NAME,
            provider_transaction_id=inv_id,
            outcome=PaymentOutcome.CONFIRMED,
            raw_signature_valid=True,
            amount=amount,
        )
