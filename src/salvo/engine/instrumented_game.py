"""Turn controller with a per-match span and game-level metrics."""

from __future__ import annotations

import time
from typing import Any

from salvo.engine.attack import AttackResult
from salvo.engine.errors import SalvoError
from salvo.engine.game import Side, TurnController
from salvo.engine.grid import Coordinate
from salvo.engine.placement import Placement
from salvo.telemetry import get_logger, get_tracer, record_game_metric


class InstrumentedTurnController(TurnController):
    """Wraps TurnController with tracing, metrics, and logging."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("salvo.engine")
        self._tracer = get_tracer("salvo.engine")
        self._game_span = None
        self._game_start_time: float | None = None
        self._shots: dict[Side, int] = {Side.PLAYER: 0, Side.OPPONENT: 0}

    def setup_opponent(self) -> list[Placement]:
        self._start_game_span()
        with self._tracer.start_as_current_span("salvo.engine.setup_opponent") as span:
            placements = super().setup_opponent()
            span.set_attribute("ships", len(placements))
            record_game_metric("salvo_game_setup_total", 1, {"side": Side.OPPONENT.value})
            self._logger.info("Opponent fleet placed (%d ships)", len(placements))
            return placements

    def fire(self, side: Side, coord: Coordinate) -> AttackResult:
        with self._tracer.start_as_current_span("salvo.engine.fire") as span:
            span.set_attribute("side", side.value)
            span.set_attribute("coord.row", coord.row)
            span.set_attribute("coord.col", coord.col)

            try:
                result = super().fire(side, coord)
            except SalvoError as exc:
                record_game_metric(
                    "salvo_game_invalid_shots_total",
                    1,
                    {"side": side.value, "reason": type(exc).__name__},
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.warning(
                    "Rejected shot from %s at (%d,%d): %s", side.value, coord.row, coord.col, exc
                )
                raise

            self._shots[side] += 1
            span.set_attribute("shot_outcome", result.value)
            record_game_metric(
                "salvo_shots_total", 1, {"side": side.value, "result": result.value}
            )
            self._logger.info(
                "fire side=%s coord=(%d,%d) outcome=%s",
                side.value,
                coord.row,
                coord.col,
                result.value,
            )

            if self.is_finished:
                self._finish_game()
            return result

    def _start_game_span(self) -> None:
        self._close_game_span()
        self._game_start_time = time.perf_counter()
        self._shots = {Side.PLAYER: 0, Side.OPPONENT: 0}
        self._game_span = self._tracer.start_span("salvo.engine.game")

    def _finish_game(self) -> None:
        duration = (time.perf_counter() - self._game_start_time) if self._game_start_time else 0.0
        total_shots = sum(self._shots.values())
        winner = self.winner.value if self.winner else "unknown"

        record_game_metric("salvo_game_completed_total", 1, {"winner": winner})
        record_game_metric("salvo_game_duration_seconds", duration, {"winner": winner})

        if self._game_span is not None:
            self._game_span.set_attribute("winner", winner)
            self._game_span.set_attribute("shots", total_shots)
            self._game_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info(
            "Game finished. Winner=%s shots=%d duration_s=%.3f", winner, total_shots, duration
        )
        self._close_game_span()

    def _close_game_span(self) -> None:
        if self._game_span is not None:
            self._game_span.end()
            self._game_span = None
