"""Turn controller for a human vs. automated Salvo match."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from salvo.telemetry import get_meter, get_tracer

from .attack import AttackResult, attack
from .errors import AlreadyAttackedError, GameOverError, OutOfBoundsError, TurnOrderError
from .grid import CellState, Coordinate, Grid
from .placement import Placement, place_fleet_random

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.game")
meter = get_meter("salvo.engine.game")

TURN_COUNTER = meter.create_counter(
    "salvo_engine_turns",
    unit="1",
    description="Turns played in a TurnController",
)


class TurnState(Enum):
    """States of the turn machine. The two ``*_WON`` states are terminal."""

    PLAYER_TURN = "player_turn"
    OPPONENT_TURN = "opponent_turn"
    PLAYER_WON = "player_won"
    OPPONENT_WON = "opponent_won"

    @property
    def terminal(self) -> bool:
        return self is TurnState.PLAYER_WON or self is TurnState.OPPONENT_WON


class Side(Enum):
    """The two sides of a match."""

    PLAYER = "player"
    OPPONENT = "opponent"

    def opponent(self) -> Side:
        """Return the opposing side."""
        return Side.OPPONENT if self is Side.PLAYER else Side.PLAYER


_TURN_FOR: dict[Side, TurnState] = {
    Side.PLAYER: TurnState.PLAYER_TURN,
    Side.OPPONENT: TurnState.OPPONENT_TURN,
}
_WIN_FOR: dict[Side, TurnState] = {
    Side.PLAYER: TurnState.PLAYER_WON,
    Side.OPPONENT: TurnState.OPPONENT_WON,
}

TargetSource = Callable[[], Coordinate]
ShotObserver = Callable[[Side, Coordinate, AttackResult], None]


@dataclass(frozen=True)
class GridSnapshot:
    """Read-only view of one side's grid."""

    cells: tuple[tuple[CellState, ...], ...]
    remaining_ship_cells: int


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the current match."""

    state: TurnState
    winner: Side | None
    grids: dict[Side, GridSnapshot]


class TurnController:
    """Alternates attacks between the player and the automated opponent.

    The player always moves first. After each attack the defending grid's
    remaining ship cells are checked; reaching zero ends the match in the
    attacker's favour. The random source is injected so that placement and
    opponent targeting can be replayed deterministically.
    """

    def __init__(
        self,
        player_grid: Grid | None = None,
        opponent_grid: Grid | None = None,
        rng: random.Random | None = None,
        rng_seed: int | None = None,
    ) -> None:
        self.grids: dict[Side, Grid] = {
            Side.PLAYER: player_grid if player_grid is not None else Grid.create(owner="player"),
            Side.OPPONENT: (
                opponent_grid if opponent_grid is not None else Grid.create(owner="opponent")
            ),
        }
        self.state: TurnState = TurnState.PLAYER_TURN
        self.rng: random.Random = rng if rng is not None else random.Random(rng_seed)

    @property
    def is_finished(self) -> bool:
        return self.state.terminal

    @property
    def winner(self) -> Side | None:
        if self.state is TurnState.PLAYER_WON:
            return Side.PLAYER
        if self.state is TurnState.OPPONENT_WON:
            return Side.OPPONENT
        return None

    @property
    def current_side(self) -> Side | None:
        """Side on turn, or None once the match is over."""
        if self.state is TurnState.PLAYER_TURN:
            return Side.PLAYER
        if self.state is TurnState.OPPONENT_TURN:
            return Side.OPPONENT
        return None

    def setup_opponent(self) -> list[Placement]:
        """Randomly place the automated side's fleet."""
        with tracer.start_as_current_span("game.setup_opponent"):
            return place_fleet_random(self.grids[Side.OPPONENT], self.rng)

    def setup_player_random(self) -> list[Placement]:
        """Randomly place the player's fleet."""
        with tracer.start_as_current_span("game.setup_player_random"):
            return place_fleet_random(self.grids[Side.PLAYER], self.rng)

    def player_attack(self, coord: Coordinate) -> AttackResult:
        """Fire the player's shot at the opponent grid."""
        return self.fire(Side.PLAYER, coord)

    def choose_opponent_target(self) -> Coordinate:
        """Pick uniformly among the player's cells that have not been attacked yet."""
        candidates = self.grids[Side.PLAYER].untargeted()
        if not candidates:
            raise GameOverError("No cells left to attack on the player grid.")
        return self.rng.choice(candidates)

    def opponent_attack(self) -> tuple[Coordinate, AttackResult]:
        """Let the automated side pick a target and fire."""
        coord = self.choose_opponent_target()
        return coord, self.fire(Side.OPPONENT, coord)

    def play_turn(
        self, target_source: TargetSource, on_shot: ShotObserver | None = None
    ) -> tuple[Side, Coordinate, AttackResult]:
        """Play whichever side is on turn.

        For the player, ``target_source`` is asked again until it yields a
        coordinate that can be attacked.
        """
        side = self.current_side
        if side is None:
            raise GameOverError("The match is already over.")

        if side is Side.OPPONENT:
            coord, result = self.opponent_attack()
        else:
            while True:
                coord = target_source()
                try:
                    result = self.player_attack(coord)
                except (AlreadyAttackedError, OutOfBoundsError) as exc:
                    logger.info(
                        "player_target_rejected",
                        extra={"row": coord.row, "col": coord.col, "reason": str(exc)},
                    )
                    continue
                break

        if on_shot is not None:
            on_shot(side, coord, result)
        return side, coord, result

    def run(self, target_source: TargetSource, on_shot: ShotObserver | None = None) -> TurnState:
        """Play turns until one fleet is destroyed and return the terminal state."""
        with tracer.start_as_current_span("game.run") as span:
            while not self.is_finished:
                self.play_turn(target_source, on_shot)
            span.set_attribute("game.final_state", self.state.value)
            return self.state

    def get_state(self) -> GameState:
        """Return an immutable view of the current match."""
        return GameState(
            state=self.state,
            winner=self.winner,
            grids={
                side: GridSnapshot(
                    cells=grid.rows(), remaining_ship_cells=grid.remaining_ship_cells()
                )
                for side, grid in self.grids.items()
            },
        )

    def fire(self, side: Side, coord: Coordinate) -> AttackResult:
        """Apply one attack for ``side``, enforcing turn order and the win condition."""
        with tracer.start_as_current_span("game.attack") as span:
            span.set_attribute("side", side.value)
            span.set_attribute("row", coord.row)
            span.set_attribute("col", coord.col)
            if self.is_finished:
                logger.error(
                    "attack_rejected_game_over",
                    extra={"side": side.value, "state": self.state.value},
                )
                raise GameOverError("The match is already over.")
            if self.state is not _TURN_FOR[side]:
                logger.error(
                    "attack_rejected_wrong_side",
                    extra={"side": side.value, "state": self.state.value},
                )
                raise TurnOrderError(f"It is not the {side.value}'s turn.")

            target = self.grids[side.opponent()]
            result = attack(target, coord)

            if target.remaining_ship_cells() == 0:
                self.state = _WIN_FOR[side]
                span.set_attribute("game.winner", side.value)
                logger.info("game_finished", extra={"winner": side.value})
            else:
                self.state = _TURN_FOR[side.opponent()]
                span.set_attribute("next_state", self.state.value)

            TURN_COUNTER.add(1, attributes={"result": result.value, "side": side.value})
            return result
