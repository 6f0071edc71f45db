from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..runtime import get_services
from ..schemas import (
    ClaimNumberRequest,
    ClaimNumberResponse,
    DrawRecordsResponse,
    UsedNumbersResponse,
)
from ..services.coordinator import ClaimFailure

bp = Blueprint("numbers", __name__)


@bp.get("/used-numbers")
def list_used_numbers():
    used = get_services().queries.get_used_numbers()
    return jsonify(UsedNumbersResponse(used_numbers=used).model_dump(by_alias=True))


@bp.post("/claim-number")
def claim_number():
    payload = request.get_json(force=True, silent=True) or {}
    data = ClaimNumberRequest.model_validate(payload)

    result = get_services().coordinator.claim_number(
        data.number, topic_id=data.topic_id, user_name=data.user_name
    )
    response = ClaimNumberResponse(
        success=result.success,
        message=result.message,
        number=result.number if result.success else None,
    )
    status = 500 if result.reason is ClaimFailure.PERSISTENCE_ERROR else 200
    return jsonify(response.model_dump(exclude_none=True)), status


@bp.get("/draw-records")
def list_draw_records():
    records = get_services().queries.get_draw_records()
    response = DrawRecordsResponse(
        topic_drawers=records.topic_drawers,
        topic_numbers=records.topic_numbers,
    )
    return jsonify(response.model_dump(by_alias=True))
