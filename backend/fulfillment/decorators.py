# Overview: Request decorators for API routes (caller identity and role checks).

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, jsonify, request


@dataclass(frozen=True)
class Caller:
    """Opaque caller identity issued by the external identity provider."""

    id: str
    role: str


def parse_api_tokens(raw) -> dict[str, Caller]:
    """
    Parse API_TOKENS config.

    Accepts a mapping {token: (caller_id, role)} or a string of
    ``token:caller_id:role`` entries separated by commas.
    """
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {token: Caller(id=str(caller_id), role=str(role)) for token, (caller_id, role) in raw.items()}

    tokens: dict[str, Caller] = {}
    for entry in str(raw).split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Malformed API_TOKENS entry: {entry!r}")
        token, caller_id, role = parts
        tokens[token] = Caller(id=caller_id, role=role)
    return tokens


def _is_authenticated() -> bool:
    return hasattr(g, "current_caller")


def require_auth(f):
    """
    Require a bearer token and establish caller context.

    Sets g.current_caller (Caller). Returns 401 on a missing or unknown token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        caller = current_app.extensions["api_tokens"].get(token)

        if caller is None:
            current_app.logger.warning("Rejected unknown API token for %s %s", request.method, request.path)
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_caller = caller
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """Require a specific caller role. Must be applied after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_caller.role != role:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
