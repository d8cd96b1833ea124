"""Diagnostic de la base: DNS, connexion et lecture d'une ligne par table du tunnel."""
from typing import Any, Dict
from urllib.parse import urlparse
import socket

import storefront.infra.supabase_client as supabase_client
from storefront.config import SUPABASE_URL

CHECKOUT_TABLES = ("users", "customers", "orders", "order_lines")


def _check_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}


def health_supabase_info() -> Dict[str, Any]:
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    info: Dict[str, Any] = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": None,
        "dns_error": None,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            info["dns_ok"] = True
        except OSError as e:
            info["dns_ok"] = False
            info["dns_error"] = str(e)
    try:
        client = supabase_client.get_service_supabase()
        for name in CHECKOUT_TABLES:
            info["tables"][name] = _check_table(client, name)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info
