"""turtle_instructions.py

An algebra for composing and transforming sequences of turtle moves.

Key features:
- Four primitive moves (forward, back, left, right) with copy/reverse/dilate.
- Move sequences that keep their net displacement and heading up to date
  as they are edited.
- Structural transforms: concatenation, repetition, reversal, dilation,
  angle and length normalisation.
- Fractal substitution of every forward move by a scaled motif.
- Building sequences from plain data or compact strings.

Nothing here draws; a renderer reads the moves back and draws them.
"""

from __future__ import annotations

import enum
import logging
import math
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, cast

logger = logging.getLogger(__name__)

INITIAL_HEADING = 90.0


# -------------------------
# Errors / Validation
# -------------------------


class TurtleError(ValueError):
    pass


class ConfigError(TurtleError):
    pass


class ZeroDisplacementError(TurtleError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_float(x: Any, path: str) -> float:
    _require(
        isinstance(x, (int, float)) and not isinstance(x, bool),
        f"{path} must be a number",
    )
    return float(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


def _wrap_heading(h: float) -> float:
    """Reduce a heading into [0, 360)."""
    h = h % 360.0
    # -1e-17 % 360.0 rounds up to 360.0
    if h >= 360.0:
        return 0.0
    return h


def _direction(heading_deg: float) -> tuple[float, float]:
    rad = math.radians(heading_deg)
    return math.cos(rad), math.sin(rad)


def _scale_factor(r: float, length: float) -> float:
    """Factor that rescales a displacement of magnitude ``r`` to ``length``."""
    if r == 0:
        raise ZeroDisplacementError(
            "Cannot normalize the length of a sequence with zero net displacement"
        )
    factor = length / r
    if not math.isfinite(factor):
        raise ZeroDisplacementError(
            f"Cannot scale a net displacement of {r!r} to length {length!r}"
        )
    return factor


# -------------------------
# Move model
# -------------------------


@dataclass(frozen=True)
class Pose:
    x: float
    y: float
    heading_deg: float


ORIGIN = Pose(0.0, 0.0, INITIAL_HEADING)


class MoveKind(enum.Enum):
    FORWARD = "forward"
    BACK = "back"
    LEFT = "left"
    RIGHT = "right"

    @property
    def is_translation(self) -> bool:
        return self in (MoveKind.FORWARD, MoveKind.BACK)

    @property
    def reversed(self) -> MoveKind:
        return _REVERSED_KIND[self]

    @classmethod
    def parse(cls, text: str) -> MoveKind:
        """Look up a kind by name or turtle alias (``fd``, ``bk``, ``lt``...)."""
        kind = _KIND_ALIASES.get(text.strip().lower())
        if kind is None:
            raise ConfigError(f"Unknown move type '{text}'")
        return kind


_REVERSED_KIND = {
    MoveKind.FORWARD: MoveKind.BACK,
    MoveKind.BACK: MoveKind.FORWARD,
    MoveKind.LEFT: MoveKind.RIGHT,
    MoveKind.RIGHT: MoveKind.LEFT,
}

_KIND_ALIASES = {
    "forward": MoveKind.FORWARD,
    "fd": MoveKind.FORWARD,
    "f": MoveKind.FORWARD,
    "back": MoveKind.BACK,
    "backward": MoveKind.BACK,
    "bk": MoveKind.BACK,
    "b": MoveKind.BACK,
    "left": MoveKind.LEFT,
    "lt": MoveKind.LEFT,
    "l": MoveKind.LEFT,
    "right": MoveKind.RIGHT,
    "rt": MoveKind.RIGHT,
    "r": MoveKind.RIGHT,
}


@dataclass
class Move:
    """A single turtle instruction.

    ``amount`` is a length for forward/back moves and an angle in degrees for
    left/right turns. Negative amounts are taken literally.
    """

    kind: MoveKind
    amount: float = 0.0

    def copy(self) -> Move:
        return Move(self.kind, self.amount)

    def reverse(self) -> None:
        """Swap forward/back and left/right, keeping the amount."""
        self.kind = self.kind.reversed

    def dilate(self, factor: float) -> None:
        """Scale the amount of a forward/back move; turns are left alone."""
        if self.kind.is_translation:
            self.amount *= factor


def replay(moves: Iterable[Move], start: Pose = ORIGIN) -> Pose:
    """Interpret ``moves`` from ``start`` and return the final pose.

    Uses the same arithmetic as the incremental updates in MoveSequence, so a
    replay from ORIGIN reproduces a sequence's cached pose.
    """
    x, y, h = start.x, start.y, start.heading_deg
    for mv in moves:
        if mv.kind is MoveKind.FORWARD or mv.kind is MoveKind.BACK:
            sign = 1.0 if mv.kind is MoveKind.FORWARD else -1.0
            dx, dy = _direction(h)
            x += sign * mv.amount * dx
            y += sign * mv.amount * dy
        elif mv.kind is MoveKind.LEFT:
            h = _wrap_heading(h + mv.amount)
        else:
            h = _wrap_heading(h - mv.amount)
    return Pose(x, y, h)


# -------------------------
# Move sequence
# -------------------------


class MoveSequence:
    """An ordered list of moves plus the net pose they produce.

    The turtle is assumed to start at the origin facing ``INITIAL_HEADING``.
    ``net_x``, ``net_y`` and ``net_heading`` are kept equal to ``replay(moves)``
    after every operation. Moves entering a sequence are always copied.
    """

    def __init__(self) -> None:
        self.moves: list[Move] = []
        self.net_x = 0.0
        self.net_y = 0.0
        self.net_heading = INITIAL_HEADING

    @classmethod
    def from_moves(cls, moves: Iterable[Move]) -> MoveSequence:
        seq = cls()
        seq.then(moves)
        return seq

    def copy(self) -> MoveSequence:
        other = MoveSequence()
        other.moves = [mv.copy() for mv in self.moves]
        other.net_x = self.net_x
        other.net_y = self.net_y
        other.net_heading = self.net_heading
        return other

    @property
    def pose(self) -> Pose:
        return Pose(self.net_x, self.net_y, self.net_heading)

    def __len__(self) -> int:
        return len(self.moves)

    def __iter__(self) -> Iterator[Move]:
        return iter(self.moves)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MoveSequence):
            return NotImplemented
        return self.moves == other.moves and self.pose == other.pose

    def __repr__(self) -> str:
        return (
            f"MoveSequence({len(self.moves)} moves, "
            f"net=({self.net_x:g}, {self.net_y:g}), heading={self.net_heading:g})"
        )

    def _reset_pose(self) -> None:
        self.net_x = 0.0
        self.net_y = 0.0
        self.net_heading = INITIAL_HEADING

    # Primitives

    def forward(self, distance: float) -> None:
        self.moves.append(Move(MoveKind.FORWARD, distance))
        dx, dy = _direction(self.net_heading)
        self.net_x += distance * dx
        self.net_y += distance * dy

    def back(self, distance: float) -> None:
        self.moves.append(Move(MoveKind.BACK, distance))
        dx, dy = _direction(self.net_heading)
        self.net_x += -distance * dx
        self.net_y += -distance * dy

    def left(self, degrees: float) -> None:
        """Turn counterclockwise."""
        self.moves.append(Move(MoveKind.LEFT, degrees))
        self.net_heading = _wrap_heading(self.net_heading + degrees)

    def right(self, degrees: float) -> None:
        """Turn clockwise."""
        self.moves.append(Move(MoveKind.RIGHT, degrees))
        self.net_heading = _wrap_heading(self.net_heading - degrees)

    def add_move(self, move: Move) -> None:
        """Append a copy of ``move``, updating the net pose."""
        if move.kind is MoveKind.FORWARD:
            self.forward(move.amount)
        elif move.kind is MoveKind.BACK:
            self.back(move.amount)
        elif move.kind is MoveKind.LEFT:
            self.left(move.amount)
        elif move.kind is MoveKind.RIGHT:
            self.right(move.amount)
        else:
            raise TypeError(f"Unknown move kind {move.kind!r}")

    def then(self, other: MoveSequence | Iterable[Move]) -> None:
        """Concatenate copies of another sequence's moves onto this one."""
        # Snapshot first: other may be self.
        for mv in list(other):
            self.add_move(mv)

    # Transforms

    def repeat(self, n: int) -> None:
        """Repeat the current moves ``n`` times in total.

        A negative count repeats the reversed sequence; zero empties the
        sequence and puts the turtle back at the origin.
        """
        if n < 0:
            self.reverse()
            self.repeat(-n)
            return
        if n == 0:
            logger.debug("repeat(0): clearing %d moves", len(self.moves))
            self.moves = []
            self._reset_pose()
            return
        original = list(self.moves)
        for _ in range(n - 1):
            for mv in original:
                self.add_move(mv)

    def reverse(self) -> None:
        """Reverse the sequence so that it retraces its own path.

        The pose is recomputed in closed form. Seen from its end, the reversed
        path leads back to the origin; starting it from the origin instead
        rotates everything by ``INITIAL_HEADING - heading``.
        """
        for mv in self.moves:
            mv.reverse()
        self.moves.reverse()

        old_heading = self.net_heading
        c, s = _direction(INITIAL_HEADING - old_heading)
        x, y = -self.net_x, -self.net_y
        self.net_x = x * c - y * s
        self.net_y = x * s + y * c
        self.net_heading = _wrap_heading(2 * INITIAL_HEADING - old_heading)

    def dilate(self, factor: float) -> None:
        for mv in self.moves:
            mv.dilate(factor)
        self.net_x *= factor
        self.net_y *= factor

    def normalize_angle(self) -> None:
        """Turn the sequence so it ends on the positive y axis facing 90 degrees.

        A right turn is inserted at the front to rotate the end point onto the
        axis and another one is appended to fix the final heading.
        """
        r = math.hypot(self.net_x, self.net_y)
        theta = math.degrees(math.atan2(-self.net_x, self.net_y))
        self.moves.insert(0, Move(MoveKind.RIGHT, theta))
        self.moves.append(
            Move(MoveKind.RIGHT, self.net_heading - theta - INITIAL_HEADING)
        )
        self.net_x = 0.0
        self.net_y = r
        self.net_heading = INITIAL_HEADING

    def normalize_length(self, length: float) -> None:
        """Scale all lengths so the net displacement has magnitude ``length``."""
        r = math.hypot(self.net_x, self.net_y)
        factor = _scale_factor(r, length)
        logger.debug("normalize_length: %g -> %g", r, length)
        self.dilate(factor)

    def fractalize(self, motif: MoveSequence, n: int) -> None:
        """Replace every forward move by a copy of ``motif``, ``n`` times over.

        Each copy is scaled so that its net displacement equals the length of
        the forward move it replaces. ``motif`` itself is never modified.
        """
        _require(n >= 0, "fractalize depth must be >= 0")
        template = motif.copy()
        for level in range(1, n + 1):
            self._substitute(template)
            logger.debug(
                "fractalize round %d/%d: %d moves", level, n, len(self.moves)
            )

    def _substitute(self, template: MoveSequence) -> None:
        old_moves = self.moves
        r = math.hypot(template.net_x, template.net_y)
        # Fail before touching the sequence.
        for mv in old_moves:
            if mv.kind is MoveKind.FORWARD:
                _scale_factor(r, mv.amount)

        self.moves = []
        self._reset_pose()
        for mv in old_moves:
            if mv.kind is MoveKind.FORWARD:
                piece = template.copy()
                piece.normalize_length(mv.amount)
                self.then(piece)
            else:
                self.add_move(mv)


# -------------------------
# Parsing
# -------------------------

_TOKEN_RE = re.compile(
    r"^\s*([A-Za-z]+)\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)?\s*$"
)


def parse_move(obj: Any, path: str = "move") -> Move:
    """Build a Move from ``{"type": ..., "amount": ...}`` or a token like ``"F100"``."""
    if isinstance(obj, str):
        m = _TOKEN_RE.match(obj)
        if m is None:
            raise ConfigError(f"{path} is not a valid move token: {obj!r}")
        kind = MoveKind.parse(m.group(1))
        amount = float(m.group(2)) if m.group(2) is not None else 0.0
        return Move(kind, amount)

    d = _as_dict(obj, path)
    kind = MoveKind.parse(_as_str(d.get("type"), f"{path}.type"))
    amount = _as_float(d.get("amount", 0), f"{path}.amount")
    return Move(kind, amount)


def parse_moves(obj: Any) -> MoveSequence:
    """Build a MoveSequence from a list of moves or a string like ``"F100 L90 F50"``."""
    if isinstance(obj, str):
        items: list[Any] = [tok for tok in re.split(r"[\s,]+", obj) if tok]
    else:
        _require(isinstance(obj, list), "moves must be a list or a string")
        items = cast(list[Any], obj)

    seq = MoveSequence()
    for i, item in enumerate(items):
        seq.add_move(parse_move(item, f"moves[{i}]"))
    return seq
