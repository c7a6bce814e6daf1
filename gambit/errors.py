from __future__ import annotations


class GambitError(Exception):
    """Base class for errors raised by the game core."""


class IllegalMoveError(GambitError, ValueError):
    pass


class SessionError(GambitError):
    """An event that the current session phase does not accept."""


class AbilityGenerationError(GambitError):
    """The ability provider could not produce pawn powers."""
