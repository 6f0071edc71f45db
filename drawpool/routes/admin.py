from __future__ import annotations

import hmac

from flask import Blueprint, current_app, jsonify, request

from ..errors import Forbidden
from ..runtime import get_services
from ..schemas import ResetRequest, StatusResponse

bp = Blueprint("admin", __name__)


def _require_admin() -> bool:
    api_key = get_services().settings.admin_api_key
    if api_key:
        provided = request.headers.get("X-Admin-Token", "")
        if not hmac.compare_digest(provided, api_key):
            return False
    return True


@bp.post("/reset")
def reset():
    payload = request.get_json(force=True, silent=True) or {}
    data = ResetRequest.model_validate(payload)

    if not _require_admin():
        current_app.logger.warning("Reset rejected: invalid admin token from %s", request.remote_addr)
        raise Forbidden("only administrators can reset the draw")

    get_services().coordinator.reset_all(data.is_admin)
    return jsonify(StatusResponse(success=True, message="reset complete").model_dump())
