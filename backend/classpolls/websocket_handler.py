# classpolls/websocket_handler.py
import asyncio
import json
import logging

from fastapi import WebSocket, WebSocketDisconnect

from classpolls import config
from classpolls.dashboard import DashboardView

logger = logging.getLogger(__name__)


async def ws_endpoint(websocket: WebSocket):
    """
    One live dashboard per connection.

    Every dashboard state change (loading, error, ready + summary) is pushed as
    one JSON text message. The client may send ``reload`` to tear down and reopen
    the subscription, or ``ping``.
    """
    await websocket.accept()

    app_state = websocket.app.state
    outbox = asyncio.Queue()

    def queue_state(view):
        outbox.put_nowait(view.snapshot().model_dump_json(by_alias=True))

    view = DashboardView(
        app_state.store,
        session_id=config.SESSION_ID,
        timeout=app_state.subscribe_timeout,
        on_change=queue_state,
    )

    # pump_states: forwards queued messages to this client in order
    async def pump_states():
        while True:
            message = await outbox.get()
            try:
                await websocket.send_text(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                # client went away while we were sending
                logger.info("Stopping dashboard pump: %s", e)
                break

    view.mount()
    send_task = asyncio.create_task(pump_states())

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            cmd = message.get("text")
            if cmd is None:
                logger.warning("Ignoring binary frame from dashboard client")
                continue

            if cmd == "reload":
                logger.info("[WS] dashboard reload requested")
                view.reload()
                continue

            if cmd == "ping":
                outbox.put_nowait(json.dumps({"type": "pong"}))
                continue

            # unknown command
            logger.warning("Unknown command received, ignoring: %s", cmd)

    except WebSocketDisconnect:
        logger.info("Dashboard client disconnected")
    finally:
        view.unmount()
        send_task.cancel()
        (result,) = await asyncio.gather(send_task, return_exceptions=True)
        if isinstance(result, Exception):
            logger.error("Dashboard pump failed: %r", result)
        logger.info("WebSocket connection closed, subscription released.")
