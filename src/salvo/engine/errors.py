"""Exceptions raised by the Salvo engine."""

from __future__ import annotations


class SalvoError(Exception):
    """Base class for all engine errors."""


class OutOfBoundsError(SalvoError, ValueError):
    """A coordinate lies outside the board."""


class AlreadyAttackedError(SalvoError, ValueError):
    """The targeted cell has already been resolved as a hit or a miss."""


class NoLegalPlacementError(SalvoError, RuntimeError):
    """No feasible footprint exists for a ship on the given grid."""


class TurnOrderError(SalvoError, RuntimeError):
    """An attack was issued by the side that is not on turn."""


class GameOverError(TurnOrderError):
    """An attack was issued after the game reached a terminal state."""
