from __future__ import annotations

from flask import Blueprint, jsonify

from ..runtime import get_services
from ..schemas import PoolConfigResponse

bp = Blueprint("config", __name__)


@bp.get("/config")
def get_config():
    pool = get_services().settings.pool
    response = PoolConfigResponse(pool_min=pool.min_number, pool_max=pool.max_number)
    return jsonify(response.model_dump(by_alias=True))
