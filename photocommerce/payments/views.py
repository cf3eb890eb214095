# module photocommerce.payments.views

"""Endpoints des paiements.
- /robokassa/result: ResultURL Robokassa (form en POST, query en GET), réponse texte "OK{InvId}".
- /tinkoff/notification: notification Tinkoff (JSON), réponse {"OK": true}.
- /tinkoff/session: initialise un paiement Tinkoff pour une commande.
- /conflicts: résultats de paiement contradictoires à revoir (personnel).
Robustesse:
- L'acquittement n'est envoyé qu'après validation en base; stockage indisponible
  ou délai dépassé: 503 pour que le fournisseur relivre.
- Notification non authentique: 400, journalisée, aucune écriture.
"""
import asyncio
from typing import Any, Callable, Dict
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from photocommerce.app_setup.services import (
    get_idempotency,
    get_ledger,
    get_reconciliation,
    get_robokassa_verifier,
    get_tinkoff_verifier,
)
from photocommerce.config import (
    BASE_URL,
    TINKOFF_API_URL,
    TINKOFF_SECRET_KEY,
    TINKOFF_TERMINAL_KEY,
    WEBHOOK_TIMEOUT_SECONDS,
)
from photocommerce.domain.errors import NotFound, TransientStoreError, VerificationError
from photocommerce.domain.types import Actor
from photocommerce.orders.service import OrderLedger
from photocommerce.payments.reconciliation import ReconciliationEngine
from photocommerce.payments.repository import IdempotencyStore
from photocommerce.payments.robokassa import RobokassaVerifier
from photocommerce.payments.tinkoff import TinkoffVerifier, create_payment_session
from photocommerce.utils.rate_limit import optional_rate_limit
from photocommerce.utils.security import require_staff

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class TinkoffSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId", min_length=1)


async def run_webhook(fn: Callable[[], Any]) -> Any:
    """Exécute la vérification + réconciliation (bloquantes) avec un délai maximal."""
    try:
        return await asyncio.wait_for(run_in_threadpool(fn), timeout=WEBHOOK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("payments.webhook timeout after %ss", WEBHOOK_TIMEOUT_SECONDS)
        raise TransientStoreError()


async def _robokassa_ack(payload: Dict[str, str], verifier: RobokassaVerifier, engine: ReconciliationEngine):
    def _process():
        return engine.handle(verifier.verify(payload))

    outcome = await run_webhook(_process)
    logger.info("payments.robokassa result inv_id=%s outcome=%s", payload.get("InvId"), outcome.value)
    return PlainTextResponse(f"OK{payload.get('InvId', '')}")


@router.post("/robokassa/result", include_in_schema=False)
async def robokassa_result(
    request: Request,
    verifier: RobokassaVerifier = Depends(get_robokassa_verifier),
    engine: ReconciliationEngine = Depends(get_reconciliation),
):
    """ResultURL Robokassa: signature vérifiée puis réconciliation (doublons acquittés)."""
    form = await request.form()
    return await _robokassa_ack({k: str(v) for k, v in form.items()}, verifier, engine)


@router.get("/robokassa/result", include_in_schema=False)
async def robokassa_result_get(
    request: Request,
    verifier: RobokassaVerifier = Depends(get_robokassa_verifier),
    engine: ReconciliationEngine = Depends(get_reconciliation),
):
    """ResultURL en GET (méthode d'envoi configurable côté Robokassa)."""
    return await _robokassa_ack(dict(request.query_params), verifier, engine)


@router.post("/tinkoff/notification", include_in_schema=False)
async def tinkoff_notification(
    request: Request,
    verifier: TinkoffVerifier = Depends(get_tinkoff_verifier),
    engine: ReconciliationEngine = Depends(get_reconciliation),
):
    """Notification Tinkoff: jeton vérifié; statuts intermédiaires acquittés sans réconciliation."""
    try:
        payload = await request.json()
    except ValueError:
        raise VerificationError("Notification Tinkoff mal formée")

    def _process():
        event = verifier.verify(payload)
        return engine.handle(event) if event is not None else None

    outcome = await run_webhook(_process)
    logger.info(
        "payments.tinkoff notification payment_id=%s status=%s outcome=%s",
        payload.get("PaymentId"), payload.get("Status"), outcome.value if outcome else "acknowledged",
    )
    return JSONResponse({"OK": True})


@router.post("/tinkoff/session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def tinkoff_session(body: TinkoffSessionRequest, ledger: OrderLedger = Depends(get_ledger)):
    order = ledger.find_order(body.order_id)
    if order is None:
        raise NotFound("Commande introuvable")
    return create_payment_session(
        order, TINKOFF_TERMINAL_KEY, TINKOFF_SECRET_KEY, TINKOFF_API_URL, BASE_URL,
        timeout=WEBHOOK_TIMEOUT_SECONDS,
    )


@router.get("/conflicts")
def list_conflicts(
    limit: int = 100,
    actor: Actor = Depends(require_staff),
    idempotency: IdempotencyStore = Depends(get_idempotency),
):
    records = idempotency.list_conflicts(actor.tenant_id, limit=max(1, min(limit, 500)))
    return {"conflicts": [r.to_dict() for r in records]}
