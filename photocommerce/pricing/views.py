# module photocommerce.pricing.views

"""Endpoints de la politique tarifaire du studio de l'acteur.
- GET /api/v1/pricing: politique active (ou politique plateforme par défaut).
- POST /api/v1/pricing: nouvelle version active, l'ancienne est désactivée et conservée.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from photocommerce.app_setup.services import get_pricing
from photocommerce.domain.types import Actor
from photocommerce.pricing.service import PricingService
from photocommerce.utils.security import require_staff, require_studio_admin

router = APIRouter(prefix="/api/v1/pricing", tags=["Pricing API"])


class PricingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_per_unit: Decimal = Field(alias="pricePerUnit", ge=0)
    bulk_discount_threshold: int = Field(default=0, alias="bulkDiscountThreshold", ge=0)
    bulk_discount_percent: Decimal = Field(default=Decimal("0"), alias="bulkDiscountPercent", ge=0, le=100)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


@router.get("")
def api_get_pricing(actor: Actor = Depends(require_staff), pricing: PricingService = Depends(get_pricing)):
    return pricing.get_policy(actor.tenant_id).to_dict()


@router.post("")
def api_update_pricing(
    body: PricingUpdate,
    actor: Actor = Depends(require_studio_admin),
    pricing: PricingService = Depends(get_pricing),
):
    policy = pricing.update_policy(actor, body.model_dump())
    return JSONResponse(policy.to_dict(), status_code=201)
