# module photocommerce.orders.views

"""Endpoints des commandes.
- POST /api/v1/orders: checkout invité (rate-limité), prix calculé côté serveur.
- POST /api/v1/orders/quote: aperçu du prix d'une sélection.
- GET /api/v1/orders, GET /api/v1/orders/{id}: lecture par le personnel du studio.
- PATCH /api/v1/orders/{id}/status et /payment-status: changements manuels (personnel).
Sécurité:
- Le studio vient de la séance (checkout) ou de la session vérifiée (personnel), jamais d'un en-tête.
- optional_rate_limit: limite la fréquence des créations de commande.
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from photocommerce.app_setup.services import get_ledger
from photocommerce.config import BASE_URL, ROBOKASSA_LOGIN, ROBOKASSA_PASSWORD_1, ROBOKASSA_PAYMENT_URL, ROBOKASSA_TEST_MODE
from photocommerce.domain.types import Actor, GuestContact, PaymentMethod
from photocommerce.orders.service import OrderLedger
from photocommerce.payments.robokassa import build_payment_link
from photocommerce.utils.rate_limit import optional_rate_limit
from photocommerce.utils.security import require_staff

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    guest_email: EmailStr = Field(alias="guestEmail")
    guest_name: Optional[str] = Field(default=None, alias="guestName", max_length=200)
    guest_phone: Optional[str] = Field(default=None, alias="guestPhone", max_length=50)
    photo_ids: List[str] = Field(alias="photoIds")
    payment_method: str = Field(alias="paymentMethod")


class QuoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    photo_ids: List[str] = Field(alias="photoIds")


class StatusUpdate(BaseModel):
    status: str


class PaymentStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_status: str = Field(alias="paymentStatus")


@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def api_create_order(body: CreateOrderRequest, ledger: OrderLedger = Depends(get_ledger)):
    """Crée une commande pending/pending.
    - Délègue au ledger: validation de la sélection, tarification, écriture atomique.
    - Robokassa: renvoie le lien de paiement signé (paymentLink).
    - Tinkoff: le client appelle ensuite /api/v1/payments/tinkoff/session.
    """
    order = ledger.create_order(
        body.session_id,
        GuestContact(email=str(body.guest_email), name=body.guest_name, phone=body.guest_phone),
        body.photo_ids,
        body.payment_method,
    )
    payload = {
        "orderId": order.id,
        "finalAmount": str(order.final_amount),
        "paymentMethod": order.payment_method.value,
    }
    if order.payment_method == PaymentMethod.ROBOKASSA:
        payload["paymentLink"] = build_payment_link(
            order, ROBOKASSA_LOGIN, ROBOKASSA_PASSWORD_1, ROBOKASSA_PAYMENT_URL, test_mode=ROBOKASSA_TEST_MODE,
        )
    elif order.payment_method == PaymentMethod.TINKOFF:
        payload["paymentSessionUrl"] = f"{BASE_URL.rstrip('/')}/api/v1/payments/tinkoff/session"
    return JSONResponse(payload, status_code=201)


@router.post("/quote", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def api_quote(body: QuoteRequest, ledger: OrderLedger = Depends(get_ledger)):
    return ledger.quote_preview(body.session_id, body.photo_ids).to_dict()


@router.get("")
def api_list_orders(
    status: Optional[str] = None,
    paymentStatus: Optional[str] = None,
    limit: int = 100,
    actor: Actor = Depends(require_staff),
    ledger: OrderLedger = Depends(get_ledger),
):
    orders = ledger.list_orders(actor, status=status, payment_status=paymentStatus, limit=limit)
    return {"orders": [o.to_dict() for o in orders]}


@router.get("/{order_id}")
def api_get_order(order_id: str, actor: Actor = Depends(require_staff), ledger: OrderLedger = Depends(get_ledger)):
    return ledger.get_order(order_id, actor).to_dict()


@router.patch("/{order_id}/status")
def api_set_status(
    order_id: str,
    body: StatusUpdate,
    actor: Actor = Depends(require_staff),
    ledger: OrderLedger = Depends(get_ledger),
):
    return ledger.set_manual_status(order_id, actor, status=body.status).to_dict()


@router.patch("/{order_id}/payment-status")
def api_set_payment_status(
    order_id: str,
    body: PaymentStatusUpdate,
    actor: Actor = Depends(require_staff),
    ledger: OrderLedger = Depends(get_ledger),
):
    """Statut de paiement manuel: commandes en espèces uniquement (409 sinon)."""
    return ledger.set_manual_status(order_id, actor, payment_status=body.payment_status).to_dict()
