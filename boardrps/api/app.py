"""
FastAPI Application - WebSocket game server plus a small REST surface.

Endpoints:
    WS     /ws                          Lobby and match commands / events
    GET    /api/v1/matches              List live matches
    GET    /api/v1/matches/{id}         Neutral snapshot of a match
    GET    /health                      Health check
    GET    /                            API info

WebSocket flow:
    1. Server sends `welcome` (with the connection id) and `lobby_updated`
    2. Client sends `join_lobby`, then `challenge` / `play_with_bot`
    3. Match commands (`reshuffle`, `ready`, `move`, `tie_choice`, `replay`,
       `exit`) name the match id; the server answers with `state_changed`,
       `tie_round_repeated` and `returned_to_lobby` events
    4. Closing the socket forfeits an unfinished match

All frames are JSON objects with a `type` field; see schemas.py. Binary
frames are decoded as JSON too.
"""

from typing import Optional, Union
import logging
import os

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .models import Delivery
from .schemas import ErrorCode, ErrorResponse, HealthResponse, MatchListResponse, MatchSnapshot
from .service import APIService


# Environment configuration
BOARDRPS_ENV = os.getenv("BOARDRPS_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
REDACT_HIDDEN = os.getenv("BOARDRPS_REDACT_HIDDEN", "1").lower() not in {"0", "false", "no"}

logger = logging.getLogger(__name__)


def create_app(service: APIService | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Board RPS API",
        description="""
Real-time Rock-Paper-Scissors on a board, two players or player vs bot.

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_MESSAGE` | WebSocket frame is not a valid command |
| `MATCH_NOT_FOUND` | Match does not exist or has ended |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService(redact_hidden=REDACT_HIDDEN)
    app.state.service = api_service

    # Open sockets by connection id
    ws_connections: dict[str, WebSocket] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    # =========================================================================
    # Delivery
    # =========================================================================

    async def deliver(deliveries: list[Delivery]):
        """Send deliveries in order; drop sockets that fail."""
        for delivery in deliveries:
            ws = ws_connections.get(delivery.connection_id)
            if ws is None:
                continue
            try:
                await ws.send_json(delivery.to_json())
            except Exception:
                logger.warning("Dropping connection %s after failed send", delivery.connection_id)
                ws_connections.pop(delivery.connection_id, None)

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Lobby and match traffic for one client.

        Each frame is handled synchronously by the service; its
        deliveries are sent only after that, so commands never
        interleave on a match.
        """
        await websocket.accept()

        connection_id, deliveries = api_service.connect()
        ws_connections[connection_id] = websocket
        await deliver(deliveries)

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                data = message.get("text")
                if data is None:
                    data = message.get("bytes") or b""
                await deliver(api_service.handle_message(connection_id, data))
        except WebSocketDisconnect:
            logger.info("Connection %s disconnected", connection_id)
        finally:
            ws_connections.pop(connection_id, None)
            await deliver(api_service.disconnect(connection_id))

    # =========================================================================
    # Match Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/matches",
        response_model=MatchListResponse,
        tags=["Matches"],
        summary="List live matches",
    )
    async def list_matches() -> MatchListResponse:
        matches = api_service.list_matches()
        return MatchListResponse(matches=matches, count=len(matches))

    @app.get(
        "/api/v1/matches/{match_id}",
        response_model=MatchSnapshot,
        responses={404: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Get a neutral snapshot of a match",
    )
    async def get_match(match_id: str) -> Union[MatchSnapshot, JSONResponse]:
        """Unrevealed items are hidden unless redaction is switched off."""
        snapshot = api_service.get_snapshot(match_id)
        if snapshot is None:
            return make_error_response(
                ErrorCode.MATCH_NOT_FOUND,
                f"Match {match_id} not found",
                status_code=404,
            )
        return snapshot

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(status="healthy", service="boardrps", version=__version__)

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Board RPS API",
            "version": __version__,
            "env": BOARDRPS_ENV,
            "docs": "/api/docs",
            "health": "/health",
            "websocket": "/ws",
        }

    return app


# For running directly: uvicorn boardrps.api.app:app
app = create_app()
