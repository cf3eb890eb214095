"""Réconciliation des événements de paiement vérifiés avec le ledger.

handle(event) -> confirmed | failed | duplicate_ignored | rejected
- clé d'idempotence déjà connue: duplicate_ignored, aucune écriture
- sinon OrderLedger.apply_payment_outcome (atomique, sérialisé par commande)
- issue contradictoire sur une commande paid/refunded: conflit enregistré, rejected
Chaque appel produit une ligne d'audit (fournisseur, transaction, issue).
"""
import logging

from photocommerce.domain.errors import Conflict, VerificationError
from photocommerce.domain.types import Effect, PaymentEvent, ReconciliationOutcome
from photocommerce.notifications.emitter import PAYMENT_FAILED, PAYMENT_RECEIVED, NotificationEmitter
from photocommerce.orders.service import OrderLedger
from photocommerce.payments.repository import IdempotencyStore

logger = logging.getLogger(__name__)

EFFECT_OUTCOMES = {
    Effect.CONFIRMED: ReconciliationOutcome.CONFIRMED,
    Effect.FAILED: ReconciliationOutcome.FAILED,
}


class ReconciliationEngine:
    def __init__(self, ledger: OrderLedger, idempotency: IdempotencyStore, emitter: NotificationEmitter):
        self.ledger = ledger
        self.idempotency = idempotency
        self.emitter = emitter

    def handle(self, event: PaymentEvent) -> ReconciliationOutcome:
        if not event.raw_signature_valid:
            logger.warning(
                "payments.reconcile unsigned event provider=%s transaction_id=%s",
                event.provider_name, event.provider_transaction_id,
            )
            raise VerificationError()

        key = event.idempotency_key
        if self.idempotency.get_record(key) is not None:
            return self._audit(event, ReconciliationOutcome.DUPLICATE_IGNORED)

        try:
            applied = self.ledger.apply_payment_outcome(event.order_id, event.outcome, key)
        except Conflict as exc:
            # Conflit déjà enregistré dans le ledger: acquitté, commande inchangée
            logger.warning(
                "payments.reconcile conflict needs manual review provider=%s transaction_id=%s order_id=%s payment_status=%s",
                event.provider_name, event.provider_transaction_id, event.order_id, exc.payment_status,
            )
            return self._audit(event, ReconciliationOutcome.REJECTED)
        if applied.duplicate:
            return self._audit(event, ReconciliationOutcome.DUPLICATE_IGNORED)

        outcome = EFFECT_OUTCOMES[applied.effect]
        if applied.effect == Effect.CONFIRMED:
            self.emitter.emit(PAYMENT_RECEIVED, applied.order)
        else:
            self.emitter.emit(PAYMENT_FAILED, applied.order)
        return self._audit(event, outcome)

    @staticmethod
    def _audit(event: PaymentEvent, outcome: ReconciliationOutcome) -> ReconciliationOutcome:
        logger.info(
            "payments.reconcile provider=%s transaction_id=%s order_id=%s event=%s outcome=%s",
            event.provider_name, event.provider_transaction_id, event.order_id,
            event.outcome.value, outcome.value,
        )
        return outcome
