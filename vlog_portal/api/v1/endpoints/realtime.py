# vlog_portal/api/v1/endpoints/realtime.py
"""
Realtime dashboard feed over a WebSocket.

Client -> server:
    {"action": "sign_in", "token": "<access token>"}
    {"action": "sign_out"}

Server -> client: the AdminContext events
    {"type": "auth", "user": {...} | null}
    {"type": "snapshot", "submissions": [...]}
    {"type": "error", "category": "...", "message": "..."}
    {"type": "cleared"}
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vlog_portal.core.exceptions import AuthError
from vlog_portal.services.admin_context import AdminContext, ContextEvent
from vlog_portal.services.auth_gateway import AuthGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _forward(websocket: WebSocket, outbox: "asyncio.Queue[ContextEvent]") -> None:
    while True:
        event = await outbox.get()
        await websocket.send_json(event)


@router.websocket("/ws/submissions")
async def submissions_feed(websocket: WebSocket):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    outbox: "asyncio.Queue[ContextEvent]" = asyncio.Queue()

    # snapshots are pushed from worker threads after each commit
    def push(event: ContextEvent) -> None:
        loop.call_soon_threadsafe(outbox.put_nowait, event)

    gateway = AuthGateway(websocket.app.state.session_factory)
    context = AdminContext(gateway, websocket.app.state.repository, on_event=push)
    context.start()
    sender = asyncio.create_task(_forward(websocket, outbox))

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError):
                # not a JSON text frame
                push({
                    "type": "error",
                    "category": "protocol",
                    "message": "Messages must be JSON objects",
                })
                continue
            action = message.get("action") if isinstance(message, dict) else None

            if action == "sign_in":
                try:
                    await asyncio.to_thread(gateway.resume, str(message.get("token", "")))
                except AuthError as exc:
                    push({"type": "error", "category": "auth", "message": str(exc)})
            elif action == "sign_out":
                await asyncio.to_thread(gateway.sign_out)
            else:
                push({
                    "type": "error",
                    "category": "protocol",
                    "message": f"Unknown action: {action!r}",
                })
    except WebSocketDisconnect:
        logger.info("Dashboard feed disconnected")
    finally:
        sender.cancel()
        context.close()
