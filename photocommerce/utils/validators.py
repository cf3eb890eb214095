import uuid

def is_uuid(value) -> bool:
    """Vrai si la valeur est un UUID textuel (identifiants opaques de commande/séance)."""
    try:
        uuid.UUID(str(value or "").strip())
        return True
    except ValueError:
        return False
