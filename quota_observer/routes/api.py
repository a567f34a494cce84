"""Read-only API: defined space quotas, published violation states, enforcements in effect."""

import functools
import hmac
from typing import Any, Callable

from flask import current_app, jsonify, request

from quota_observer.models import BasicError, SpaceQuotaResponse, ViolationStatesResponse
from quota_observer.notifications import get_table_enforcements
from quota_observer.quota_store import list_space_quotas
from quota_observer.state_cache import get_published_violation_states, get_redis_client

API_USER = "api"


def _error(msg: str, status: int) -> tuple[Any, int]:
    return jsonify(BasicError(msg=msg).model_dump()), status


def observer_api_key_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Basic auth as ``api`` with the configured API_KEY as password."""

    @functools.wraps(view)
    def wrapped(*args: Any, **kwargs: Any) -> Any:
        expected = current_app.config.get("API_KEY")
        if not expected:
            return _error("observer API key is not configured", 500)
        credentials = request.authorization
        if credentials is None:
            return _error("authorization required", 401)
        if credentials.username != API_USER or not hmac.compare_digest(
            (credentials.password or "").encode("utf-8"), expected.encode("utf-8")
        ):
            return _error("access forbidden", 403)
        return view(*args, **kwargs)

    return wrapped


def register_api_routes(app: Any) -> None:
    """Register /api/* routes on the Flask app."""

    @app.route("/api/space-quotas")
    @observer_api_key_required
    def get_space_quotas() -> Any:
        quotas = [
            SpaceQuotaResponse(
                kind=q.kind.value,
                subject=q.subject,
                limit_bytes=q.quota.limit_bytes,
                violation_policy=q.quota.violation_policy.value if q.quota.violation_policy else None,
            ).model_dump()
            for q in sorted(list_space_quotas(), key=lambda q: (q.kind.value, q.subject))
        ]
        return jsonify(quotas)

    @app.route("/api/space-quotas/violations")
    @observer_api_key_required
    def get_violation_states() -> tuple[Any, int] | Any:
        client = get_redis_client(current_app.config.get("CELERY_BROKER_URL"))
        data = get_published_violation_states(client)
        if data is None:
            err = BasicError(msg="violation states not available", detail="observer has not published a pass yet")
            return jsonify(err.model_dump()), 503
        return jsonify(ViolationStatesResponse.model_validate(data).model_dump())

    @app.route("/api/space-quota-enforcements")
    @observer_api_key_required
    def get_space_quota_enforcements() -> Any:
        return jsonify(get_table_enforcements())
