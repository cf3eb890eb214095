"""
Logique de tarification pure (pas de fournisseur, pas de DB).
- quote(policy, item_count): prix détaillé d'une sélection de photos.
- default_policy(studio_id): politique plateforme utilisée sans politique active.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from photocommerce.config import DEFAULT_CURRENCY, DEFAULT_PRICE_PER_PHOTO
from photocommerce.domain.errors import ValidationError
from photocommerce.domain.types import CENT, PricingPolicy

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Quote:
    price_per_unit: Decimal
    item_count: int
    total_amount: Decimal
    discount: Decimal
    final_amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pricePerUnit": str(self.price_per_unit),
            "itemCount": self.item_count,
            "totalAmount": str(self.total_amount),
            "discount": str(self.discount),
            "finalAmount": str(self.final_amount),
            "currency": self.currency,
        }


def default_policy(studio_id: str = "") -> PricingPolicy:
    """Politique plateforme: prix unitaire constant, aucune remise."""
    return PricingPolicy(
        studio_id=studio_id,
        price_per_unit=DEFAULT_PRICE_PER_PHOTO,
        bulk_discount_threshold=0,
        bulk_discount_percent=Decimal("0"),
        currency=DEFAULT_CURRENCY,
    )


def quote(policy: Optional[PricingPolicy], item_count: int) -> Quote:
    """
    Calcule le prix d'une sélection:
    - total = item_count * price_per_unit
    - remise = total * percent / 100 si item_count >= seuil, sinon 0
    - final = total - remise
    Arithmétique Decimal exacte, arrondi demi-supérieur au centime en toute fin;
    la remise arrondie est soustraite du total pour que final = total - remise.
    """
    if isinstance(item_count, bool) or not isinstance(item_count, int) or item_count < 1:
        raise ValidationError("La sélection doit contenir au moins une photo")

    active = policy or default_policy()
    price = Decimal(active.price_per_unit)
    percent = Decimal(active.bulk_discount_percent)
    if price < 0 or percent < 0 or percent > HUNDRED:
        raise ValidationError("Politique tarifaire invalide")

    total = price * item_count
    discount = Decimal("0")
    threshold = int(active.bulk_discount_threshold or 0)
    if item_count >= threshold:
        discount = total * percent / HUNDRED

    total_q = total.quantize(CENT, rounding=ROUND_HALF_UP)
    discount_q = min(discount.quantize(CENT, rounding=ROUND_HALF_UP), total_q)
    return Quote(
        price_per_unit=price.quantize(CENT, rounding=ROUND_HALF_UP),
        item_count=item_count,
        total_amount=total_q,
        discount=discount_q,
        final_amount=total_q - discount_q,
        currency=active.currency or DEFAULT_CURRENCY,
    )
