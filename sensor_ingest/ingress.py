"""
HTTP webhook receiver for ChirpStack events.

Every call is answered with the same 200 acknowledgement. Reading the body
and enqueueing happen after the response is sent, and any failure there is
logged only: webhook callers retry aggressively on non-2xx, so ingress never
fails loudly.
"""

import json
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import PlainTextResponse

from sensor_ingest import __version__
from sensor_ingest.broker import MessageQueue
from sensor_ingest.config.models import IngressSettings
from sensor_ingest.models import EventType, QueuedMessage
from sensor_ingest.utils import get_logger

logger = get_logger(__name__)


def forward_event(queue: MessageQueue, event: EventType, body: bytes) -> None:
    """Parse a webhook body and put it on the queue; failures are logged, not raised."""
    try:
        data = json.loads(body)
        queue.send(QueuedMessage(event=event, data=data))
    except Exception:
        logger.exception(f"Error processing {event.value} request")


def create_app(queue: MessageQueue, settings: Optional[IngressSettings] = None) -> FastAPI:
    """
    Build the ingress application.

    Args:
        queue: Queue the accepted events are sent to
        settings: Ingress settings, defaults apply when omitted

    Returns:
        FastAPI application exposing ``POST /`` and ``GET /health``
    """
    settings = settings or IngressSettings()
    app = FastAPI(title="Sensor Ingest", version=__version__)

    @app.post("/", response_class=PlainTextResponse)
    async def receive_event(
        request: Request,
        background_tasks: BackgroundTasks,
        event: Optional[str] = None,
    ) -> str:
        if not settings.accepts(event):
            logger.debug(f"Ignoring webhook call with event={event!r}")
            return settings.ack_message

        try:
            body = await request.body()
        except Exception:
            logger.exception(f"Failed to read {event} webhook body")
            return settings.ack_message

        background_tasks.add_task(forward_event, queue, EventType(event), body)
        return settings.ack_message

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
