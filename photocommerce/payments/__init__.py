"""
Module 'payments' (feature-first): point d'entrée public.
Réunit les vérificateurs Robokassa/Tinkoff, le registre d'idempotence et la réconciliation.
"""

from .robokassa import RobokassaVerifier, build_payment_link
from .tinkoff import TinkoffVerifier, build_token, create_payment_session
from .repository import IdempotencyStore, SupabaseIdempotencyStore
from .reconciliation import ReconciliationEngine

__all__ = [
    # fournisseurs
    "RobokassaVerifier",
    "build_payment_link",
    "TinkoffVerifier",
    "build_token",
    "create_payment_session",
    # registre d'idempotence
    "IdempotencyStore",
    "SupabaseIdempotencyStore",
    # réconciliation
    "ReconciliationEngine",
]
