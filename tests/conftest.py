"""Shared test helpers."""

from __future__ import annotations

import random
from collections.abc import Iterable

import pytest


class ScriptedRandom(random.Random):
    """Random source that replays a fixed script.

    ``choices`` are indices into the sequence handed to :meth:`choice`;
    ``ranges`` are returned verbatim by :meth:`randrange`.
    """

    def __init__(self, choices: Iterable[int] = (), ranges: Iterable[int] = ()) -> None:
        super().__init__(0)
        self._choices = list(choices)
        self._ranges = list(ranges)

    def choice(self, seq):  # type: ignore[override]
        return seq[self._choices.pop(0)]

    def randrange(self, *args, **kwargs):  # type: ignore[override]
        return self._ranges.pop(0)


@pytest.fixture
def scripted_rng():
    return ScriptedRandom
