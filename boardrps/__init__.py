"""
Board RPS - Rock-Paper-Scissors on a board

A real-time engine for two players, or a player against a bot, moving
hidden Rock/Paper/Scissors soldiers on a 6x7 grid. The engine provides:
- Combat resolution and tie-breaks
- Board and match state management
- Legal move generation
- Bot policies
- A lobby and match server over WebSocket
"""

__version__ = "0.1.0"
