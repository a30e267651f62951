"""
API Module - Network interface for browser clients.

Exposes the engine over a WebSocket for live play plus a few REST
endpoints for inspection. Clients:
1. Join the lobby under a display name
2. Challenge another user or start a match against the bot
3. Send setup, move and tie-break commands
4. Receive per-player snapshots after every change

All state is in memory. No persistent user accounts required.
"""

from .models import Delivery, LobbyEntry
from .schemas import (
    # Commands
    ClientCommand,
    parse_command,
    # Events
    ServerEvent,
    ErrorEvent,
    # Snapshot
    MatchSnapshot,
    SideInfo,
    WinnerInfo,
    TieInfo,
    # REST
    ErrorResponse,
    ErrorCode,
)
from .service import APIService, build_snapshot
from .app import create_app

__all__ = [
    # Commands
    "ClientCommand",
    "parse_command",
    # Events
    "ServerEvent",
    "ErrorEvent",
    # Snapshot
    "MatchSnapshot",
    "SideInfo",
    "WinnerInfo",
    "TieInfo",
    # REST
    "ErrorResponse",
    "ErrorCode",
    # Service
    "APIService",
    "build_snapshot",
    "Delivery",
    "LobbyEntry",
    "create_app",
]
