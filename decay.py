#!/usr/bin/env python3
"""
  ░▒▓  D E C A Y  ▓▒░
  A randomized cell-reveal / decay animation for the terminal.

  A grid of two-character blocks is drawn one cell at a time in shuffled
  order, held for a moment, then eaten away in exactly the reverse order.
  Repeat for as many cycles as you like (or forever).

  Usage:
    python3 decay.py                        16x16 green, one cycle
    python3 decay.py -W 40 -H 20 -C random  bigger, confetti
    python3 decay.py -c 0 --no-decay        forever, cleared each cycle
    python3 decay.py -s 42                  reproducible pattern

  Ctrl-C stops an infinite run; the terminal is always restored.
"""

from __future__ import annotations

import argparse
import curses
import logging
import logging.handlers
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np
from numpy.typing import NDArray

__version__ = "0.1.0"

LOGGER = logging.getLogger(__name__)

# ── Palette ─────────────────────────────────────────────────────────────
PALETTE: dict[str, int] = {
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "blue": curses.COLOR_BLUE,
    "yellow": curses.COLOR_YELLOW,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
    "black": curses.COLOR_BLACK,
}

# "random" never picks black
RANDOM_PALETTE: tuple[str, ...] = tuple(c for c in PALETTE if c != "black")

RANDOM_COLOR = "random"
DEFAULT_COLOR = "green"

# ── Glyphs ──────────────────────────────────────────────────────────────
BLOCK = "\u2588\u2588"  # ██  one cell, two columns wide
BLANK = "  "
CELL_WIDTH = len(BLOCK)


# ═══════════════════════════════════════════════════════════════════════
#  Configuration
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RunConfig:
    """Everything a run needs; fixed once parsed."""

    width: int = 16
    height: int = 16
    draw_delay: int = 10        # ms, per drawn or erased cell
    interval_delay: int = 200   # ms, between draw and decay
    color: str = DEFAULT_COLOR
    decay: bool = True
    cycles: int = 1             # 0 = forever
    seed: int | None = None

    def __post_init__(self) -> None:
        for name in ("width", "height", "draw_delay", "interval_delay", "cycles"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.seed is not None and self.seed < 0:
            raise ValueError(f"seed must be >= 0, got {self.seed}")

    @property
    def infinite(self) -> bool:
        return self.cycles == 0


# ═══════════════════════════════════════════════════════════════════════
#  Color policy
# ═══════════════════════════════════════════════════════════════════════

def resolve_color(name: str) -> str | None:
    """Map a user color name to a palette entry.

    Returns ``None`` for ``"random"`` (pick per cell). Unknown names fall
    back to :data:`DEFAULT_COLOR` without complaint.
    """
    key = name.lower()
    if key == RANDOM_COLOR:
        return None
    if key in PALETTE:
        return key
    LOGGER.debug("Unknown color %r, using %s", name, DEFAULT_COLOR)
    return DEFAULT_COLOR


def pick_color(fixed: str | None, rng: np.random.Generator) -> str:
    """Color for one cell: the fixed color, or a fresh draw from the palette."""
    if fixed is not None:
        return fixed
    return RANDOM_PALETTE[int(rng.integers(len(RANDOM_PALETTE)))]


@dataclass
class ColorMap:
    """Manages one curses color pair per palette color."""

    _pairs: dict[str, int] = field(default_factory=dict)

    def setup(self) -> None:
        if not curses.has_colors():
            return
        curses.start_color()
        curses.use_default_colors()

        max_pairs = curses.COLOR_PAIRS - 1
        for pair_id, (name, color) in enumerate(PALETTE.items(), start=1):
            if pair_id > max_pairs:
                break
            curses.init_pair(pair_id, color, -1)
            self._pairs[name] = pair_id

    def attr(self, name: str) -> int:
        pair_id = self._pairs.get(name)
        if pair_id is None:
            return curses.A_NORMAL
        return curses.color_pair(pair_id)


# ═══════════════════════════════════════════════════════════════════════
#  Cell sequences
# ═══════════════════════════════════════════════════════════════════════

def grid_coordinates(width: int, height: int) -> NDArray[np.intp]:
    """All ``(x, y)`` pairs of the grid in row-major order, shape ``(W*H, 2)``."""
    ys, xs = np.divmod(np.arange(width * height, dtype=np.intp), max(width, 1))
    return np.column_stack((xs, ys))


def shuffle_cells(
    coords: NDArray[np.intp], rng: np.random.Generator
) -> NDArray[np.intp]:
    """Uniformly permute the rows of ``coords`` using ``rng``."""
    return rng.permutation(coords)


# ═══════════════════════════════════════════════════════════════════════
#  The animation
# ═══════════════════════════════════════════════════════════════════════

class Animation:
    """
    Draws shuffled grids into a curses window, cycle after cycle.

    The window, color map, RNG and sleep function are all injected; the
    engine never touches global curses state itself, so it runs equally
    well against a real screen or a stub window.
    """

    def __init__(
        self,
        stdscr: curses.window,
        config: RunConfig,
        cmap: ColorMap,
        rng: np.random.Generator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.stdscr = stdscr
        self.config = config
        self.cmap = cmap
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self._sleep = sleep

        self.fixed_color = resolve_color(config.color)
        self._draw_s = config.draw_delay / 1000.0
        self._interval_s = config.interval_delay / 1000.0
        self._coords = grid_coordinates(config.width, config.height)

        self.cycles_run = 0
        self.draw_phases = 0
        self.decay_phases = 0

    # ── Phases ─────────────────────────────────────────────────────────

    def clear(self) -> None:
        self.stdscr.clear()
        self.stdscr.refresh()

    def shuffled_cells(self) -> NDArray[np.intp]:
        return shuffle_cells(self._coords, self.rng)

    def draw_phase(self, cells: NDArray[np.intp]) -> None:
        for x, y in cells.tolist():
            color = pick_color(self.fixed_color, self.rng)
            self._put(x, y, BLOCK, self.cmap.attr(color))
            self._sleep(self._draw_s)
        self.draw_phases += 1

    def decay_phase(self, cells: NDArray[np.intp]) -> None:
        for x, y in cells[::-1].tolist():
            self._put(x, y, BLANK, curses.A_NORMAL)
            self._sleep(self._draw_s)
        self.decay_phases += 1

    def run_cycle(self) -> NDArray[np.intp]:
        """One full cycle; returns the draw order used."""
        self.clear()
        cells = self.shuffled_cells()
        self.draw_phase(cells)
        self._sleep(self._interval_s)
        if self.config.decay:
            self.decay_phase(cells)
        self.cycles_run += 1
        LOGGER.debug("Cycle %d complete (%d cells)", self.cycles_run, len(cells))
        return cells

    def run(self) -> int:
        """Run the configured number of cycles. Returns cycles completed."""
        remaining = self.config.cycles
        while True:
            self.run_cycle()
            if not self.config.infinite:
                remaining -= 1
                if remaining == 0:
                    break
        return self.cycles_run

    # ── Output ─────────────────────────────────────────────────────────

    def _put(self, x: int, y: int, text: str, attr: int) -> None:
        col = x * CELL_WIDTH
        # the terminal can be resized mid-cycle
        max_y, max_x = self.stdscr.getmaxyx()
        if y >= max_y or col + CELL_WIDTH > max_x:
            return
        try:
            self.stdscr.addstr(y, col, text, attr)
        except curses.error:
            # Writing the last screen cell succeeds but cannot advance the
            # cursor, which curses reports as an error.
            if not (y == max_y - 1 and col + CELL_WIDTH == max_x):
                raise
        self.stdscr.refresh()


# ═══════════════════════════════════════════════════════════════════════
#  Logging
# ═══════════════════════════════════════════════════════════════════════

class DeferredHandler(logging.handlers.MemoryHandler):
    """Buffers records while curses owns the screen; emits them on close.

    Only the most recent ``capacity`` records are kept.
    """

    def __init__(self, target: logging.Handler, capacity: int = 1000) -> None:
        super().__init__(capacity, flushLevel=logging.CRITICAL + 1, target=target)

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        return False

    def emit(self, record: logging.LogRecord) -> None:
        self.buffer.append(record)
        if len(self.buffer) > self.capacity:
            del self.buffer[: len(self.buffer) - self.capacity]


def _attach_logging(level: str) -> DeferredHandler:
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handler = DeferredHandler(stream)
    LOGGER.addHandler(handler)
    LOGGER.setLevel(getattr(logging, level.upper(), logging.WARNING))
    return handler


def _detach_logging(handler: DeferredHandler) -> None:
    LOGGER.removeHandler(handler)
    handler.close()


# ═══════════════════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════════════════

def _non_negative(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="decay",
        description="Randomized cell reveal / decay animation for the terminal",
    )
    parser.add_argument("-W", "--width", type=_non_negative, default=16,
                        help="Width of the animation grid (default: 16)")
    parser.add_argument("-H", "--height", type=_non_negative, default=16,
                        help="Height of the animation grid (default: 16)")
    parser.add_argument("-d", "--draw-delay", type=_non_negative, default=10,
                        help="Delay between drawing each cell in ms (default: 10)")
    parser.add_argument("-i", "--interval-delay", type=_non_negative, default=200,
                        help="Delay between drawing and decay in ms (default: 200)")
    parser.add_argument("-C", "--color", default=DEFAULT_COLOR,
                        help="Cell color: red, green, blue, yellow, magenta, "
                             "cyan, white, black or random (default: green)")
    parser.add_argument("--no-decay", action="store_true",
                        help="Disable the decay (disappearing) animation")
    parser.add_argument("-c", "--cycles", type=_non_negative, default=1,
                        help="Number of animation cycles, 0 for infinite (default: 1)")
    parser.add_argument("-s", "--seed", type=_non_negative, default=None,
                        help="Seed for reproducible patterns")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Messages printed after the terminal is restored")
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> tuple[RunConfig, str]:
    args = build_parser().parse_args(argv)
    config = RunConfig(
        width=args.width,
        height=args.height,
        draw_delay=args.draw_delay,
        interval_delay=args.interval_delay,
        color=args.color,
        decay=not args.no_decay,
        cycles=args.cycles,
        seed=args.seed,
    )
    return config, args.log_level


def _session(stdscr: curses.window, config: RunConfig) -> int:
    curses.curs_set(0)
    cmap = ColorMap()
    cmap.setup()
    return Animation(stdscr, config, cmap).run()


def main(argv: Sequence[str] | None = None) -> int:
    config, log_level = parse_args(argv)
    handler = _attach_logging(log_level)
    LOGGER.info("Starting: %s", config)
    try:
        cycles = curses.wrapper(_session, config)
        LOGGER.info("Finished %d cycle(s)", cycles)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    except (curses.error, OSError) as exc:
        LOGGER.error("Terminal failure: %s", exc)
        return 1
    finally:
        _detach_logging(handler)
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
