"""Diagnostic Supabase: DNS, connexion et accès aux tables du ledger."""
from urllib.parse import urlparse
import socket
from photocommerce.config import SUPABASE_URL
from photocommerce.infra.supabase_client import get_service_supabase

LEDGER_TABLES = ("orders", "order_items", "payment_idempotency", "pricing_policies", "notifications")

def _check_table(client, name: str):
    try:
        res = client.table(name).select("*").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": type(e).__name__}

def health_supabase_info():
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError:
            dns_ok = False

    info = {
        "hostname": hostname,
        "dns_ok": dns_ok,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = get_service_supabase()
        for t in LEDGER_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = all(v["ok"] for v in info["tables"].values())
    except Exception as e:
        info["error"] = type(e).__name__
    return info
