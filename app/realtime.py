"""WebSocket stream of newly ingested readings."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api import API_PREFIX, get_registry
from services.registry import SubscriberRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket(f"{API_PREFIX}/ws")
async def stream_readings(
    websocket: WebSocket,
    registry: SubscriberRegistry = Depends(get_registry),
) -> None:
    """Register the connection and hold it open until the client goes away.

    Nothing sent before the connection was registered is replayed. Messages
    from the client are ignored.
    """
    await websocket.accept()
    await registry.register(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Subscriber disconnected")
    except RuntimeError as exc:
        # Raised once the registry has already closed a failed connection.
        logger.debug("Subscriber connection closed: %s", exc)
    finally:
        await registry.deregister(websocket)
