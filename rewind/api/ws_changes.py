"""WebSocket temps reel des changements / Real-time change feed WebSocket."""

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from rewind.utils.auth import decode_token

router = APIRouter()


@router.websocket("/ws/changes")
async def websocket_changes(
    websocket: WebSocket,
    token: str = Query(default=""),
):
    """Connexion WebSocket authentifiee / Authenticated WebSocket connection.

    Types de messages : change_recorded
    """
    # Authentification JWT / JWT authentication
    payload = decode_token(token) if token else None
    if payload is None or payload.get("type") != "access":
        await websocket.close(code=4001, reason="Invalid token")
        return

    feed = websocket.app.state.services.feed
    await feed.connect(websocket)
    try:
        while True:
            # Garder la connexion ouverte, recevoir pings / Keep connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        feed.disconnect(websocket)
