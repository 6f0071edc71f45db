from __future__ import annotations

import json
from typing import Iterator

from flask import Blueprint, Response

from ..runtime import get_services
from ..services.notifier import Subscription
from ..state import DrawState

bp = Blueprint("events", __name__)

INITIAL_EVENT = "initial-data"
UPDATE_EVENT = "data-update"


def format_event(event: str, state: DrawState) -> str:
    data = json.dumps(state.to_dict(), separators=(",", ":"))
    return f"id: {state.version}\nevent: {event}\ndata: {data}\n\n"


def stream_states(subscription: Subscription, keepalive_seconds: float) -> Iterator[str]:
    event = INITIAL_EVENT
    try:
        while True:
            state = subscription.get(timeout=keepalive_seconds)
            if state is None:
                if subscription.closed:
                    return
                yield ": keepalive\n\n"
                continue
            yield format_event(event, state)
            event = UPDATE_EVENT
    finally:
        subscription.close()


@bp.get("/events")
def subscribe():
    services = get_services()
    subscription = services.notifier.subscribe()
    response = Response(
        stream_states(subscription, services.settings.notifier.keepalive_seconds),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
    # The generator's finally never runs if the client leaves before the first chunk.
    response.call_on_close(subscription.close)
    return response
