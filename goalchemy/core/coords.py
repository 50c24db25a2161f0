"""Board coordinates: vertices, signs, SGF coordinate strings and visible ranges.

A vertex is an ``(x, y)`` tuple with ``(0, 0)`` in the top-left corner, matching SGF,
so ``"dd"`` is ``(3, 3)`` and no axis is flipped.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Sequence, Tuple

from goalchemy.core.constants import BLACK, DEFAULT_BOARD_SIZE, EMPTY, WHITE
from goalchemy.core.errors import MalformedSgfError

Vertex = Tuple[int, int]

SGF_COORD = list("abcdefghijklmnopqrstuvwxyz") + list("ABCDEFGHIJKLMNOPQRSTUVWXYZ")  # sgf goes to 52


def sgf_to_vertex(sgf_coord: str) -> Vertex:
    """Convert an SGF coordinate (e.g. ``"bc"``) to a vertex (e.g. ``(1, 2)``)."""
    if len(sgf_coord) != 2:
        raise MalformedSgfError(f"Invalid SGF coordinate {sgf_coord!r}")
    try:
        return SGF_COORD.index(sgf_coord[0]), SGF_COORD.index(sgf_coord[1])
    except ValueError:
        raise MalformedSgfError(f"Invalid SGF coordinate {sgf_coord!r}")


def vertex_to_sgf(vertex: Vertex) -> str:
    x, y = vertex
    if not (0 <= x < len(SGF_COORD) and 0 <= y < len(SGF_COORD)):
        raise ValueError(f"Vertex {vertex} can not be written as an SGF coordinate")
    return SGF_COORD[x] + SGF_COORD[y]


def expand_sgf_points(values: Sequence[str]) -> list[Vertex]:
    """Expand a point list which may contain compressed rectangles like ``"aa:cc"``."""
    vertices: list[Vertex] = []
    for value in values:
        if ":" in value:
            start, end = value.split(":")[:2]
            (x1, y1), (x2, y2) = sgf_to_vertex(start), sgf_to_vertex(end)
            for y in range(min(y1, y2), max(y1, y2) + 1):
                for x in range(min(x1, x2), max(x1, x2) + 1):
                    vertices.append((x, y))
        else:
            vertices.append(sgf_to_vertex(value))
    return vertices


def opponent(sign: int) -> int:
    """Returns the opposing sign, i.e. Black <-> White. Empty stays empty."""
    return -sign


def sign_to_player(sign: int) -> str:
    """Returns the SGF move property for a sign, ``"B"`` or ``"W"``."""
    if sign == BLACK:
        return "B"
    if sign == WHITE:
        return "W"
    raise ValueError(f"Sign {sign} is not a player")


def player_to_sign(player: str) -> int:
    player = player.strip().upper()
    if player in ("B", "BLACK", "1"):
        return BLACK
    if player in ("W", "WHITE", "-1"):
        return WHITE
    raise ValueError(f"Unknown player {player!r}")


def sign_name(sign: int) -> str:
    return {BLACK: "Black", WHITE: "White", EMPTY: "Empty"}[sign]


@dataclass(frozen=True)
class BoardRange:
    """Inclusive rectangle of the board that a puzzle focuses on."""

    start_x: int
    start_y: int
    end_x: int
    end_y: int

    @classmethod
    def full(cls, board_size: int) -> "BoardRange":
        return cls(0, 0, board_size - 1, board_size - 1)

    @classmethod
    def from_corners(cls, a: Vertex, b: Vertex) -> "BoardRange":
        """Normalized rectangle spanned by two opposite corners."""
        return cls(min(a[0], b[0]), min(a[1], b[1]), max(a[0], b[0]), max(a[1], b[1]))

    @property
    def corners(self) -> Tuple[Vertex, Vertex]:
        return (self.start_x, self.start_y), (self.end_x, self.end_y)

    @property
    def width(self) -> int:
        return self.end_x - self.start_x + 1

    @property
    def height(self) -> int:
        return self.end_y - self.start_y + 1

    def contains(self, vertex: Vertex) -> bool:
        x, y = vertex
        return self.start_x <= x <= self.end_x and self.start_y <= y <= self.end_y

    def fits(self, board_size: int) -> bool:
        return (
            0 <= self.start_x <= self.end_x < board_size and 0 <= self.start_y <= self.end_y < board_size
        )

    def clamped(self, board_size: int) -> "BoardRange":
        """Range limited to the board, for library entries written for a larger board."""
        top = board_size - 1
        return BoardRange.from_corners(
            (min(max(self.start_x, 0), top), min(max(self.start_y, 0), top)),
            (min(max(self.end_x, 0), top), min(max(self.end_y, 0), top)),
        )

    def vertices(self) -> Iterator[Vertex]:
        for y in range(self.start_y, self.end_y + 1):
            for x in range(self.start_x, self.end_x + 1):
                yield x, y

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.start_x, self.start_y, self.end_x, self.end_y


# Windows used by the problem collections, defined on a 19x19 board
STANDARD_RANGES: Dict[str, BoardRange] = {
    "full": BoardRange(0, 0, 18, 18),
    "top_right": BoardRange(9, 0, 18, 9),
    "top_left": BoardRange(0, 0, 9, 9),
    "bottom_left": BoardRange(0, 9, 9, 18),
    "bottom_right": BoardRange(9, 9, 18, 18),
    "right": BoardRange(8, 0, 18, 18),
    "left": BoardRange(0, 0, 10, 18),
    "top": BoardRange(0, 0, 18, 10),
    "bottom": BoardRange(0, 9, 18, 18),
}


def standard_range(name: str, board_size: int = DEFAULT_BOARD_SIZE) -> BoardRange:
    """Look up a named range; ``"full"`` always covers the whole board of the given size."""
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    if key == "full":
        return BoardRange.full(board_size)
    if key not in STANDARD_RANGES:
        raise KeyError(f"Unknown board range {name!r}")
    return STANDARD_RANGES[key].clamped(board_size)
