# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

TENANT_HEADER = "X-Tenant-Id"
USER_HEADER = "X-User-Id"


def _header_int(name: str) -> int | None:
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def require_identity(f):
    """
    Establish tenant context from the upstream identity layer.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant_id: The tenant the caller acts for - REQUIRED
    - g.user_id: The acting user (may be None for service accounts)

    Authentication and authorization happen before requests reach this
    service; the gateway forwards the verified identity in X-Tenant-Id /
    X-User-Id. These values are trusted as-is.

    Returns 401 if the tenant header is missing or not an integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = _header_int(TENANT_HEADER)
        if tenant_id is None:
            return jsonify({"error": "Tenant context required"}), 401

        g.tenant_id = tenant_id
        g.user_id = _header_int(USER_HEADER)

        return f(*args, **kwargs)

    return decorated_function
