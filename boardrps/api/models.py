"""
API Models - Internal bookkeeping for the transport layer.

The pydantic schemas (schemas.py) define what goes over the wire.
These dataclasses track who is connected and what must be sent to whom.
"""

from __future__ import annotations
from dataclasses import dataclass

from pydantic import BaseModel


@dataclass
class LobbyEntry:
    """A connected user who has joined the lobby."""
    connection_id: str
    username: str
    in_game: bool = False


@dataclass
class Delivery:
    """
    One outbound event for one connection.

    The service produces deliveries; the transport sends them after the
    command that produced them has been fully processed.
    """
    connection_id: str
    event: BaseModel

    def to_json(self) -> dict:
        return self.event.model_dump(mode="json")
