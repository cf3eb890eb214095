"""Lecture du registre d'idempotence des paiements (table payment_idempotency).

L'écriture n'a lieu que dans la fonction SQL apply_payment_outcome, avec la
mise à jour de la commande (voir orders/repository.py).
"""
from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from photocommerce.domain.errors import TransientStoreError
from photocommerce.domain.types import Effect, IdempotencyKey, IdempotencyRecord
from photocommerce.infra.supabase_client import first_row, get_service_supabase, response_rows

logger = logging.getLogger(__name__)

RECORD_COLUMNS = "provider_name, provider_transaction_id, order_id, outcome, effect, created_at"


class IdempotencyStore(ABC):
    @abstractmethod
    def get_record(self, key: IdempotencyKey) -> Optional[IdempotencyRecord]:
        ...

    @abstractmethod
    def list_conflicts(self, studio_id: str, limit: int = 100) -> List[IdempotencyRecord]:
        """Enregistrements en conflit (revue manuelle) pour un studio."""


class SupabaseIdempotencyStore(IdempotencyStore):
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or get_service_supabase()

    def get_record(self, key: IdempotencyKey) -> Optional[IdempotencyRecord]:
        try:
            res = (
                self.client
                .table("payment_idempotency")
                .select(RECORD_COLUMNS)
                .eq("provider_name", key.provider_name)
                .eq("provider_transaction_id", key.provider_transaction_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.exception("payments.get_record failed key=%s", key)
            raise TransientStoreError() from exc
        row = first_row(res)
        return IdempotencyRecord.from_row(row) if row else None

    def list_conflicts(self, studio_id: str, limit: int = 100) -> List[IdempotencyRecord]:
        try:
            res = (
                self.client
                .table("payment_idempotency")
                .select(RECORD_COLUMNS)
                .eq("studio_id", studio_id)
                .eq("effect", Effect.CONFLICT.value)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as exc:
            logger.exception("payments.list_conflicts failed studio_id=%s", studio_id)
            raise TransientStoreError() from exc
        return [IdempotencyRecord.from_row(r) for r in response_rows(res)]
