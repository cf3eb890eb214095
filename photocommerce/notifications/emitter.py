"""Émission des événements de notification (table notifications).

Le cœur n'envoie aucun email: il enregistre un événement logique que le
service d'envoi consomme. Un échec d'émission est journalisé et n'annule
jamais l'opération principale (commande ou paiement déjà validés).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

from photocommerce.domain.types import Order
from photocommerce.infra.supabase_client import get_service_supabase

logger = logging.getLogger(__name__)

NEW_ORDER = "new_order"
PAYMENT_RECEIVED = "payment_received"
PAYMENT_FAILED = "payment_failed"
ORDER_STATUS_CHANGED = "order_status_changed"


class NotificationEmitter(ABC):
    @abstractmethod
    def emit(self, event_type: str, order: Order, extra: Optional[Dict[str, Any]] = None) -> None:
        ...


def build_notification(event_type: str, order: Order, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Ligne notifications pour un événement de commande."""
    extra = extra or {}
    short_id = order.id[:8]
    if event_type == NEW_ORDER:
        title = "Nouvelle commande"
        message = f"Commande {short_id}: {len(order.items)} photo(s), {order.final_amount} à régler en espèces"
    elif event_type == PAYMENT_RECEIVED:
        title = "Paiement reçu"
        message = f"Paiement de {order.final_amount} reçu pour la commande {short_id}"
    elif event_type == PAYMENT_FAILED:
        title = "Paiement échoué"
        message = f"Le paiement de la commande {short_id} a échoué"
    elif event_type == ORDER_STATUS_CHANGED:
        title = "Statut de commande mis à jour"
        message = f"Commande {short_id}: {extra.get('previous', '?')} -> {order.status.value}"
    else:
        raise ValueError(f"Type de notification inconnu: {event_type}")

    return {
        "type": event_type,
        "order_id": order.id,
        "studio_id": order.studio_id,
        "recipient_email": order.guest_email,
        "title": title,
        "message": message,
    }


class SupabaseNotificationEmitter(NotificationEmitter):
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or get_service_supabase()

    def emit(self, event_type: str, order: Order, extra: Optional[Dict[str, Any]] = None) -> None:
        try:
            row = build_notification(event_type, order, extra)
            self.client.table("notifications").insert(row).execute()
        except Exception:
            logger.exception("notifications.emit failed type=%s order_id=%s", event_type, order.id)
