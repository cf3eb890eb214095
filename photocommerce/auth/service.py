"""Résolution de l'acteur authentifié.

Rôle et studio sont lus dans app_metadata (modifiable uniquement côté serveur),
jamais dans user_metadata ni dans des en-têtes fournis par le client.
"""
from typing import Any, Dict, Optional

from photocommerce.domain.types import STAFF_ROLES, Actor
from .repository import get_user_from_access_token as _repo_get_user_from_token

KNOWN_ROLES = STAFF_ROLES | {"guest"}


def determine_role(app_metadata: Optional[Dict[str, Any]]) -> str:
    role_lower = str((app_metadata or {}).get("role", "")).lower()
    if role_lower in KNOWN_ROLES:
        return role_lower
    return "guest"


def actor_from_user(user: Dict[str, Any]) -> Actor:
    meta = user.get("app_metadata") or {}
    tenant_id = meta.get("studio_id") or meta.get("tenant_id")
    return Actor(
        user_id=str(user.get("id") or ""),
        role=determine_role(meta),
        tenant_id=str(tenant_id) if tenant_id else None,
        email=user.get("email"),
    )


def get_actor_from_token(token: str) -> Actor:
    return actor_from_user(_repo_get_user_from_token(token))
