"""Couche service du ledger des commandes (OrderLedger).
Rôles:
- Créer une commande pending/pending chiffrée côté serveur (studio dérivé de la séance).
- Appliquer une issue de paiement de façon atomique et idempotente (seul point
  d'entrée des mutations pilotées par les fournisseurs).
- Appliquer les changements manuels du personnel (statut, paiement en espèces).
- Lire les commandes d'un studio.
Concurrence:
- Chaque écriture est un compare-and-set sur (status, payment_status) observé;
  un état périmé est relu au plus LEDGER_MAX_ATTEMPTS fois puis TransientStoreError.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence
import logging

from photocommerce.config import LEDGER_MAX_ATTEMPTS
from photocommerce.domain.errors import (
    Conflict,
    Forbidden,
    InvalidSelection,
    InvalidTransition,
    NotFound,
    TransientStoreError,
    UnsupportedPaymentMethod,
    ValidationError,
)
from photocommerce.domain.types import (
    Actor,
    AppliedResult,
    Effect,
    GuestContact,
    IdempotencyKey,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentOutcome,
    PaymentStatus,
)
from photocommerce.notifications.emitter import NEW_ORDER, ORDER_STATUS_CHANGED, NotificationEmitter
from photocommerce.orders import state
from photocommerce.orders.repository import APPLIED, DUPLICATE, OrderStore
from photocommerce.pricing.engine import Quote
from photocommerce.pricing.service import PricingService, validate_photo_ids
from photocommerce.utils.validators import is_uuid

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_payment_method(value) -> PaymentMethod:
    try:
        return PaymentMethod(str(value or "").strip().lower())
    except ValueError:
        raise UnsupportedPaymentMethod()


class OrderLedger:
    def __init__(
        self,
        store: OrderStore,
        pricing: PricingService,
        emitter: NotificationEmitter,
        max_attempts: int = LEDGER_MAX_ATTEMPTS,
        clock: Callable[[], str] = utc_now,
    ):
        self.store = store
        self.pricing = pricing
        self.emitter = emitter
        self.max_attempts = max(1, int(max_attempts))
        self.clock = clock

    # --- Commandes ---

    def _check_selection(self, session_id: str, photo_ids: Sequence[str]):
        """Vérifie la séance et l'appartenance des photos; renvoie (séance, ids)."""
        ids = validate_photo_ids(photo_ids)
        if not is_uuid(session_id):
            raise InvalidSelection("Séance introuvable")
        session = self.store.get_session(session_id)
        if not session or not session.get("studio_id"):
            raise InvalidSelection("Séance introuvable")
        owned = self.store.get_session_photo_ids(session_id, ids)
        if set(ids) - set(owned):
            raise InvalidSelection()
        return session, ids

    def quote_preview(self, session_id: str, photo_ids: Sequence[str]) -> Quote:
        session, ids = self._check_selection(session_id, photo_ids)
        return self.pricing.quote_for_tenant(str(session["studio_id"]), ids)

    def create_order(
        self,
        session_id: str,
        guest_contact: GuestContact,
        photo_ids: Sequence[str],
        payment_method,
        tenant_id: Optional[str] = None,
    ) -> Order:
        """
        Crée une commande pending/pending:
        - moyen de paiement parmi cash/robokassa/tinkoff
        - sélection non vide, sans doublon, entièrement rattachée à la séance
        - prix calculé par la politique du studio de la séance
          (tenant_id, si fourni, doit être celui de la séance)
        - commande et lignes (prix figé par photo) écrites dans une seule transaction
        """
        method = parse_payment_method(payment_method)
        if not guest_contact or not (guest_contact.email or "").strip():
            raise ValidationError("Email requis")
        session, ids = self._check_selection(session_id, photo_ids)
        studio_id = str(session["studio_id"])
        if tenant_id is not None and tenant_id != studio_id:
            raise InvalidSelection()
        q = self.pricing.quote_for_tenant(studio_id, ids)

        order_row = {
            "studio_id": studio_id,
            "session_id": session_id,
            "guest_email": guest_contact.email.strip(),
            "guest_name": guest_contact.name,
            "guest_phone": guest_contact.phone,
            "payment_method": method.value,
            "total_amount": str(q.total_amount),
            "discount": str(q.discount),
            "final_amount": str(q.final_amount),
            "status": OrderStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
        }
        items = [{"photo_id": pid, "price": str(q.price_per_unit)} for pid in ids]
        order = self.store.insert_order(order_row, items)
        logger.info(
            "orders.create_order id=%s studio_id=%s items=%s final=%s method=%s",
            order.id, studio_id, len(ids), order.final_amount, method.value,
        )
        if method == PaymentMethod.CASH:
            self.emitter.emit(NEW_ORDER, order)
        return order

    # --- Lectures ---

    def find_order(self, order_id: str) -> Optional[Order]:
        """Lecture sans contrôle de studio (vérificateurs de paiement)."""
        if not is_uuid(order_id):
            return None
        return self.store.get_order(order_id)

    def get_order(self, order_id: str, actor: Actor) -> Order:
        tenant_id = self._require_tenant(actor)
        order = self.find_order(order_id)
        # Une commande d'un autre studio est traitée comme inexistante
        if order is None or order.studio_id != tenant_id:
            raise NotFound("Commande introuvable")
        return order

    def list_orders(
        self,
        actor: Actor,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        limit: int = 100,
    ) -> List[Order]:
        tenant_id = self._require_tenant(actor)
        try:
            status_value = OrderStatus(status).value if status else None
            payment_value = PaymentStatus(payment_status).value if payment_status else None
        except ValueError:
            raise ValidationError("Filtre de statut invalide")
        return self.store.list_orders(tenant_id, status_value, payment_value, limit=max(1, min(int(limit), 500)))

    # --- Paiements ---

    def apply_payment_outcome(
        self,
        order_id: str,
        outcome: PaymentOutcome,
        idempotency_key: IdempotencyKey,
    ) -> AppliedResult:
        """
        Applique une issue fournisseur dans une unité atomique:
        verrou de la commande, insertion unique de la clé d'idempotence, mise à jour.
        - clé déjà présente: AppliedResult(duplicate=True), aucune écriture
        - issue contradictoire sur paid/refunded: effet conflict enregistré, commande inchangée,
          puis Conflict levée pour revue manuelle
        """
        for attempt in range(1, self.max_attempts + 1):
            order = self.find_order(order_id)
            if order is None:
                raise NotFound("Commande introuvable")

            effect, changes = state.plan_payment_outcome(order, outcome, self.clock())
            result, updated = self.store.apply_payment_transition(
                order.id, state.expected_state(order), idempotency_key, outcome, effect, changes,
            )
            if result == DUPLICATE:
                return AppliedResult(effect=None, order=order, duplicate=True)
            if result == APPLIED:
                if effect == Effect.CONFLICT:
                    logger.warning(
                        "orders.apply_payment_outcome conflict id=%s key=%s outcome=%s state=%s",
                        order.id, idempotency_key, outcome.value, state.describe(order),
                    )
                    raise Conflict(order.payment_status.value, outcome.value)
                if effect == Effect.CONFIRMED and order.status == OrderStatus.CANCELLED:
                    logger.warning("orders.apply_payment_outcome paid after cancellation id=%s", order.id)
                return AppliedResult(effect=effect, order=updated or order.with_changes(changes))
            logger.info("orders.apply_payment_outcome stale id=%s attempt=%s", order.id, attempt)

        raise TransientStoreError("Commande modifiée simultanément, réessayez")

    # --- Changements manuels ---

    def set_manual_status(
        self,
        order_id: str,
        actor: Actor,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> Order:
        """
        Changement manuel par le personnel du studio de la commande.
        Le statut de paiement ne se saisit à la main que pour les commandes en espèces.
        """
        if not actor.is_staff:
            raise Forbidden()
        if status is None and payment_status is None:
            raise ValidationError("Aucun changement demandé")
        try:
            target_status = OrderStatus(status) if status is not None else None
            target_payment = PaymentStatus(payment_status) if payment_status is not None else None
        except ValueError:
            raise ValidationError("Statut invalide")

        for attempt in range(1, self.max_attempts + 1):
            order = self.get_order(order_id, actor)
            now = self.clock()
            changes = {}
            if target_status is not None:
                changes.update(state.plan_status_change(order, target_status, now))
            if target_payment is not None:
                if order.payment_method != PaymentMethod.CASH:
                    raise InvalidTransition(
                        "payment_status", order.payment_status.value, target_payment.value,
                        reason="provider_managed",
                    )
                changes.update(state.plan_manual_payment_change(order, target_payment))

            updated = self.store.compare_and_set(order.id, state.expected_state(order), changes)
            if updated is None:
                logger.info("orders.set_manual_status stale id=%s attempt=%s", order.id, attempt)
                continue

            logger.info(
                "orders.set_manual_status id=%s by=%s %s -> %s",
                order.id, actor.user_id, state.describe(order), state.describe(updated),
            )
            if target_status is not None:
                self.emitter.emit(ORDER_STATUS_CHANGED, updated, {"previous": order.status.value})
            return updated

        raise TransientStoreError("Commande modifiée simultanément, réessayez")

    @staticmethod
    def _require_tenant(actor: Actor) -> str:
        if not actor or not actor.tenant_id:
            raise Forbidden()
        return actor.tenant_id
