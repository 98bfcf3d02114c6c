"""Command-line driver for playing Salvo against a random opponent."""

from __future__ import annotations

import argparse
import logging
import re

from salvo.engine.attack import AttackResult
from salvo.engine.fleet import FLEET, ShipSpec
from salvo.engine.game import Side, TurnState
from salvo.engine.grid import BOARD_SIZE, CellState, Coordinate, Grid
from salvo.engine.instrumented_game import InstrumentedTurnController
from salvo.engine.placement import Orientation, can_place, place
from salvo.telemetry import init_telemetry, shutdown_tracing

logger = logging.getLogger(__name__)

COLUMN_LABELS = "ABCDEFGHIJ"

_COORDINATE_RE = re.compile(r"\s*([A-Za-z])\s*(\d+)")

_ORIENTATION_CHOICES: dict[str, Orientation] = {
    "1": Orientation.RIGHT,
    "2": Orientation.DOWN,
    "3": Orientation.DOWN_RIGHT,
    "4": Orientation.UP_RIGHT,
}

_SYMBOLS: dict[CellState, str] = {
    CellState.EMPTY: "~",
    CellState.OCCUPIED: "S",
    CellState.HIT: "X",
    CellState.MISS: "o",
}


def parse_coordinate(text: str) -> Coordinate:
    """Parse ``A5``-style input: column letter A-J, then row number 1-10."""
    match = _COORDINATE_RE.match(text)
    if match is None:
        raise ValueError("Use a letter A-J followed by a number 1-10 (e.g. B7).")
    letter, number = match.groups()
    col = COLUMN_LABELS.find(letter.upper())
    row = int(number) - 1
    if col < 0 or not 0 <= row < BOARD_SIZE:
        raise ValueError("Use a letter A-J followed by a number 1-10 (e.g. B7).")
    return Coordinate(row, col)


def parse_orientation(text: str) -> Orientation:
    choice = text.strip()[:1]
    if choice not in _ORIENTATION_CHOICES:
        raise ValueError("Choose 1, 2, 3 or 4.")
    return _ORIENTATION_CHOICES[choice]


def format_coordinate(coord: Coordinate) -> str:
    return f"{COLUMN_LABELS[coord.col]}{coord.row + 1}"


def format_grid(grid: Grid, hide_ships: bool) -> str:
    """Render a grid; hidden ships are drawn exactly like open water."""
    lines = ["   " + "".join(f" {label}" for label in COLUMN_LABELS[: grid.size])]
    for row_number, row in enumerate(grid.rows(), start=1):
        symbols = []
        for state in row:
            if hide_ships and state is CellState.OCCUPIED:
                state = CellState.EMPTY
            symbols.append(f" {_SYMBOLS[state]}")
        lines.append(f"{row_number:>2} " + "".join(symbols))
    return "\n".join(lines)


def _ask(prompt: str) -> str:
    try:
        return input(prompt)
    except EOFError:
        raise SystemExit("Goodbye!") from None


def _prompt_setup_mode() -> str:
    print("\nPlace your ships manually or randomly?")
    raw = _ask("1) Random  2) Manual\nChoice (1-2): ").strip()
    return "manual" if raw.startswith("2") else "random"


def _prompt_for_target(target_grid: Grid) -> Coordinate:
    while True:
        raw = _ask("Enter target coordinate (e.g., A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            coord = parse_coordinate(raw)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        if target_grid.cell_state(coord).attacked:
            print("You have already fired at that cell. Choose another.")
            continue
        return coord


def _place_ship_manually(grid: Grid, spec: ShipSpec) -> None:
    while True:
        print("\nYour board:")
        print(format_grid(grid, hide_ships=False))
        print(f"Place your {spec.name} ({spec.length} cells).")
        try:
            origin = parse_coordinate(_ask("Starting coordinate (e.g., A5): "))
            orientation = parse_orientation(
                _ask("Direction: 1=right 2=down 3=diagonal down-right 4=diagonal up-right: ")
            )
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        if not can_place(grid, origin, spec.length, orientation):
            print("The ship does not fit there (off the board or overlapping). Try again.")
            continue
        place(grid, origin, spec.length, orientation)
        return


def _manual_fleet_placement(grid: Grid) -> None:
    for spec in FLEET:
        _place_ship_manually(grid, spec)


def _describe_shot(side: Side, coord: Coordinate, result: AttackResult) -> str:
    outcome = "HIT!" if result is AttackResult.HIT else "miss."
    shooter = "You fire" if side is Side.PLAYER else "Opponent fires"
    return f"{shooter} at {format_coordinate(coord)}: {outcome}"


def play_game(seed: int | None = None, setup: str = "ask") -> TurnState:
    print("=== SALVO (10x10) ===")
    print("Fleet:")
    for spec in FLEET:
        print(f"  {spec.name} ({spec.length} cells)")

    controller = InstrumentedTurnController(rng_seed=seed)
    player_grid = controller.grids[Side.PLAYER]
    opponent_grid = controller.grids[Side.OPPONENT]

    mode = _prompt_setup_mode() if setup == "ask" else setup
    if mode == "manual":
        _manual_fleet_placement(player_grid)
    else:
        controller.setup_player_random()
        print("\nYour ships have been positioned automatically.")
    controller.setup_opponent()
    logger.debug("setup_complete", extra={"mode": mode, "seed": seed})

    print("\nThe battle begins! You fire first.")

    def next_target() -> Coordinate:
        print("\n--- Your board ---")
        print(format_grid(player_grid, hide_ships=False))
        print("\n--- Enemy waters ---")
        print(format_grid(opponent_grid, hide_ships=True))
        return _prompt_for_target(opponent_grid)

    def report(side: Side, coord: Coordinate, result: AttackResult) -> None:
        print(_describe_shot(side, coord, result))

    final_state = controller.run(next_target, on_shot=report)

    if final_state is TurnState.PLAYER_WON:
        print("\nYou sank the entire enemy fleet. Victory!")
    else:
        print("\nThe opponent sank all of your ships. You lost.")
    print("\nFinal state - your board:")
    print(format_grid(player_grid, hide_ships=False))
    print("\nFinal state - enemy board (revealed):")
    print(format_grid(opponent_grid, hide_ships=False))
    return final_state


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Play Salvo against the computer.")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    parser.add_argument(
        "--setup",
        choices=("ask", "random", "manual"),
        default="ask",
        help="How to place your fleet (default: ask).",
    )
    args = parser.parse_args(argv)
    init_telemetry()
    try:
        play_game(seed=args.seed, setup=args.setup)
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
