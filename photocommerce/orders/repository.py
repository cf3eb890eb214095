"""Accès données du ledger des commandes (orders, order_items, photo_sessions, photos).

Les écritures multi-lignes passent par des fonctions Postgres (rpc):
- create_order_with_items: commande + lignes dans une seule transaction
- apply_payment_outcome: verrou de ligne, enregistrement d'idempotence et
  compare-and-set du statut dans une seule transaction
Toute erreur Supabase est journalisée puis remontée en TransientStoreError.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging

from photocommerce.domain.errors import TransientStoreError
from photocommerce.domain.types import Effect, IdempotencyKey, Order, PaymentOutcome
from photocommerce.infra.supabase_client import first_row, get_service_supabase, response_rows

logger = logging.getLogger(__name__)

ORDER_COLUMNS = (
    "id, studio_id, session_id, guest_email, guest_name, guest_phone, payment_method, "
    "total_amount, discount, final_amount, status, payment_status, "
    "created_at, processed_at, completed_at, order_items(id, order_id, photo_id, price)"
)

APPLIED = "applied"
DUPLICATE = "duplicate"
STALE = "stale"


class OrderStore(ABC):
    """Interface de stockage utilisée par OrderLedger."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Séance photo {id, studio_id} ou None."""

    @abstractmethod
    def get_session_photo_ids(self, session_id: str, photo_ids: Iterable[str]) -> Set[str]:
        """Sous-ensemble de photo_ids rattaché à la séance."""

    @abstractmethod
    def insert_order(self, order: Dict[str, Any], items: List[Dict[str, Any]]) -> Order:
        """Insère la commande et ses lignes de façon atomique."""

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def list_orders(
        self,
        studio_id: str,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        limit: int = 100,
    ) -> List[Order]:
        ...

    @abstractmethod
    def compare_and_set(self, order_id: str, expected: Tuple[str, str], changes: Dict[str, Any]) -> Optional[Order]:
        """Met à jour si (status, payment_status) vaut toujours expected; None sinon."""

    @abstractmethod
    def apply_payment_transition(
        self,
        order_id: str,
        expected: Tuple[str, str],
        key: IdempotencyKey,
        outcome: PaymentOutcome,
        effect: Effect,
        changes: Dict[str, Any],
    ) -> Tuple[str, Optional[Order]]:
        """
        Unité atomique du ledger. Renvoie (résultat, commande):
        - ("applied", commande après écriture)
        - ("duplicate", None): la clé d'idempotence existe déjà
        - ("stale", None): l'état observé a changé entre-temps
        """


class SupabaseOrderStore(OrderStore):
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or get_service_supabase()

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.client
                .table("photo_sessions")
                .select("id, studio_id")
                .eq("id", session_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.exception("orders.get_session failed session_id=%s", session_id)
            raise TransientStoreError() from exc
        return first_row(res)

    def get_session_photo_ids(self, session_id: str, photo_ids: Iterable[str]) -> Set[str]:
        ids = list(photo_ids)
        try:
            res = (
                self.client
                .table("photos")
                .select("id")
                .eq("session_id", session_id)
                .in_("id", ids)
                .execute()
            )
        except Exception as exc:
            logger.exception("orders.get_session_photo_ids failed session_id=%s", session_id)
            raise TransientStoreError() from exc
        return {str(r.get("id")) for r in response_rows(res)}

    def insert_order(self, order: Dict[str, Any], items: List[Dict[str, Any]]) -> Order:
        try:
            res = self.client.rpc(
                "create_order_with_items", {"p_order": order, "p_items": items}
            ).execute()
        except Exception as exc:
            logger.exception("orders.insert_order failed session_id=%s", order.get("session_id"))
            raise TransientStoreError() from exc
        row = first_row(res)
        if not row:
            raise TransientStoreError("Commande non enregistrée")
        return Order.from_row(row)

    def get_order(self, order_id: str) -> Optional[Order]:
        try:
            res = (
                self.client
                .table("orders")
                .select(ORDER_COLUMNS)
                .eq("id", order_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.exception("orders.get_order failed id=%s", order_id)
            raise TransientStoreError() from exc
        row = first_row(res)
        return Order.from_row(row) if row else None

    def list_orders(
        self,
        studio_id: str,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        limit: int = 100,
    ) -> List[Order]:
        try:
            query = (
                self.client
                .table("orders")
                .select(ORDER_COLUMNS)
                .eq("studio_id", studio_id)
            )
            if status:
                query = query.eq("status", status)
            if payment_status:
                query = query.eq("payment_status", payment_status)
            res = query.order("created_at", desc=True).limit(limit).execute()
        except Exception as exc:
            logger.exception("orders.list_orders failed studio_id=%s", studio_id)
            raise TransientStoreError() from exc
        return [Order.from_row(r) for r in response_rows(res)]

    def compare_and_set(self, order_id: str, expected: Tuple[str, str], changes: Dict[str, Any]) -> Optional[Order]:
        status, payment_status = expected
        try:
            res = (
                self.client
                .table("orders")
                .update(changes)
                .eq("id", order_id)
                .eq("status", status)
                .eq("payment_status", payment_status)
                .execute()
            )
        except Exception as exc:
            logger.exception("orders.compare_and_set failed id=%s", order_id)
            raise TransientStoreError() from exc
        if not first_row(res):
            return None
        return self.get_order(order_id)

    def apply_payment_transition(
        self,
        order_id: str,
        expected: Tuple[str, str],
        key: IdempotencyKey,
        outcome: PaymentOutcome,
        effect: Effect,
        changes: Dict[str, Any],
    ) -> Tuple[str, Optional[Order]]:
        status, payment_status = expected
        try:
            res = self.client.rpc(
                "apply_payment_outcome",
                {
                    "p_order_id": order_id,
                    "p_expected_status": status,
                    "p_expected_payment_status": payment_status,
                    "p_provider_name": key.provider_name,
                    "p_provider_transaction_id": key.provider_transaction_id,
                    "p_outcome": outcome.value,
                    "p_effect": effect.value,
                    "p_changes": changes,
                },
            ).execute()
        except Exception as exc:
            logger.exception("orders.apply_payment_transition failed id=%s key=%s", order_id, key)
            raise TransientStoreError() from exc
        row = first_row(res) or {}
        result = row.get("result")
        if result not in (APPLIED, DUPLICATE, STALE):
            raise TransientStoreError("Réponse inattendue du ledger")
        order_row = row.get("order")
        if result == APPLIED and order_row:
            return result, Order.from_row(order_row, items=[])
        return result, None
