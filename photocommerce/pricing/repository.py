"""Accès données des politiques tarifaires (table pricing_policies).

Une seule politique active par studio (index unique partiel). La mise à jour
passe par la fonction SQL replace_pricing_policy: désactivation de l'ancienne
version et insertion de la nouvelle dans la même transaction.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

from photocommerce.domain.errors import TransientStoreError
from photocommerce.domain.types import PricingPolicy
from photocommerce.infra.supabase_client import first_row, get_service_supabase

logger = logging.getLogger(__name__)

POLICY_COLUMNS = (
    "id, studio_id, price_per_unit, bulk_discount_threshold, "
    "bulk_discount_percent, currency, is_active, created_at"
)


class PricingStore(ABC):
    @abstractmethod
    def get_active_policy(self, studio_id: str) -> Optional[PricingPolicy]:
        """Politique active du studio, ou None."""

    @abstractmethod
    def replace_active_policy(self, studio_id: str, values: Dict[str, Any]) -> PricingPolicy:
        """Désactive la politique courante et enregistre la nouvelle version active."""


class SupabasePricingStore(PricingStore):
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or get_service_supabase()

    def get_active_policy(self, studio_id: str) -> Optional[PricingPolicy]:
        try:
            res = (
                self.client
                .table("pricing_policies")
                .select(POLICY_COLUMNS)
                .eq("studio_id", studio_id)
                .eq("is_active", True)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.exception("pricing.get_active_policy failed studio_id=%s", studio_id)
            raise TransientStoreError() from exc
        row = first_row(res)
        return PricingPolicy.from_row(row) if row else None

    def replace_active_policy(self, studio_id: str, values: Dict[str, Any]) -> PricingPolicy:
        try:
            res = self.client.rpc(
                "replace_pricing_policy",
                {
                    "p_studio_id": studio_id,
                    "p_price_per_unit": str(values["price_per_unit"]),
                    "p_bulk_discount_threshold": int(values.get("bulk_discount_threshold") or 0),
                    "p_bulk_discount_percent": str(values.get("bulk_discount_percent") or "0"),
                    "p_currency": values.get("currency"),
                },
            ).execute()
        except Exception as exc:
            logger.exception("pricing.replace_active_policy failed studio_id=%s", studio_id)
            raise TransientStoreError() from exc
        row = first_row(res)
        if not row:
            raise TransientStoreError("Politique tarifaire non enregistrée")
        return PricingPolicy.from_row(row)
