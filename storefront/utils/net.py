# storefront/utils/net.py
from fastapi import Request


def get_client_ip(request: Request) -> str | None:
    # proxy/load balancer: pierwszy adres w X-Forwarded-For to klient
    xff = request.headers.get("x-forwarded-for", "")
    if xff:
        return xff.split(",")[0].strip() or None
    return request.headers.get("x-real-ip") or (request.client.host if request.client else None)
