"""Couche service de la tarification.
Rôles:
- Résoudre la politique active d'un studio (ou la politique plateforme par défaut).
- Chiffrer une sélection de photos pour un studio (quote_for_tenant).
- Publier une nouvelle version de politique (désactive l'ancienne, conservée pour audit).
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Sequence
import logging

from photocommerce.config import DEFAULT_CURRENCY
from photocommerce.domain.errors import Forbidden, ValidationError
from photocommerce.domain.types import Actor, PricingPolicy
from photocommerce.pricing.engine import Quote, default_policy, quote
from photocommerce.pricing.repository import PricingStore

logger = logging.getLogger(__name__)

POLICY_ADMIN_ROLES = frozenset({"admin", "studio-admin"})


def validate_photo_ids(photo_ids: Sequence[str]) -> list:
    """Liste non vide, sans doublon, d'identifiants non vides."""
    ids = [str(p).strip() for p in (photo_ids or [])]
    if not ids:
        raise ValidationError("La sélection doit contenir au moins une photo")
    if any(not p for p in ids):
        raise ValidationError("Identifiant de photo invalide")
    if len(set(ids)) != len(ids):
        raise ValidationError("La sélection contient des photos en double")
    return ids


class PricingService:
    def __init__(self, store: PricingStore):
        self.store = store

    def get_policy(self, tenant_id: str) -> PricingPolicy:
        return self.store.get_active_policy(tenant_id) or default_policy(tenant_id)

    def quote_for_tenant(self, tenant_id: str, photo_ids: Sequence[str]) -> Quote:
        ids = validate_photo_ids(photo_ids)
        return quote(self.get_policy(tenant_id), len(ids))

    def update_policy(self, actor: Actor, payload: Dict[str, Any]) -> PricingPolicy:
        """
        Enregistre une nouvelle politique active pour le studio de l'acteur.
        Bornes: prix >= 0, seuil >= 0, pourcentage dans [0, 100].
        """
        if actor.role not in POLICY_ADMIN_ROLES or not actor.tenant_id:
            raise Forbidden()
        try:
            price = Decimal(str(payload.get("price_per_unit")))
            percent = Decimal(str(payload.get("bulk_discount_percent") or "0"))
            threshold = int(payload.get("bulk_discount_threshold") or 0)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Politique tarifaire invalide")
        if not price.is_finite() or not percent.is_finite():
            raise ValidationError("Politique tarifaire invalide")
        if price < 0 or threshold < 0 or percent < 0 or percent > 100:
            raise ValidationError("Politique tarifaire invalide")

        policy = self.store.replace_active_policy(
            actor.tenant_id,
            {
                "price_per_unit": price,
                "bulk_discount_threshold": threshold,
                "bulk_discount_percent": percent,
                "currency": (payload.get("currency") or DEFAULT_CURRENCY).upper(),
            },
        )
        logger.info(
            "pricing.update_policy studio_id=%s price=%s threshold=%s percent=%s",
            actor.tenant_id, policy.price_per_unit, policy.bulk_discount_threshold, policy.bulk_discount_percent,
        )
        return policy
