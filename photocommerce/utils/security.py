from fastapi import Request, HTTPException, Depends
from photocommerce.domain.types import Actor

COOKIE_NAME = "sb_access"

def get_current_actor(request: Request) -> Actor:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)

    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    try:
        # Délégué au service Auth
        from photocommerce.auth.service import get_actor_from_token as _svc_get_actor_from_token
        actor = _svc_get_actor_from_token(token)
        if not actor.user_id:
            raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
        return actor
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

def require_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_staff or not actor.tenant_id:
        raise HTTPException(status_code=403, detail="Accès interdit")
    return actor

def require_studio_admin(actor: Actor = Depends(require_staff)) -> Actor:
    if actor.role not in ("admin", "studio-admin"):
        raise HTTPException(status_code=403, detail="Accès interdit")
    return actor
