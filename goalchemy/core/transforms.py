"""Board transformation algebra.

A BoardTransformation combines a clockwise rotation (0/90/180/270), a reflection
(none/horizontal/vertical/diagonal) and color inversion. The forward transform
rotates first and reflects second. Every transformation has an exact inverse, and
the same algebra is applied to vertices, ranges, whole boards, stone colors and
comment text so that one stored puzzle can be shown in any of its 32 presentations.

Example:
    >>> t = BoardTransformation(rotation=90)
    >>> transform_vertex((0, 0), t, 19)
    (0, 18)
    >>> inverse_transform_vertex((0, 18), t, 19)
    (0, 0)
"""

import random
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from goalchemy.core.board import Board
from goalchemy.core.coords import BoardRange, Vertex
from goalchemy.core.errors import InvalidTransformationError

ROTATIONS = (0, 90, 180, 270)
CLOCKWISE = "clockwise"
COUNTERCLOCKWISE = "counterclockwise"


class Reflection(str, Enum):
    NONE = "none"
    HORIZONTAL = "horizontal"  # flips top/bottom
    VERTICAL = "vertical"  # flips left/right
    DIAGONAL = "diagonal"  # transpose


def parse_reflection(value: Union[str, Reflection]) -> Reflection:
    try:
        return Reflection(value)
    except ValueError:
        raise InvalidTransformationError(
            f"Invalid reflection {value!r}, expected one of {[r.value for r in Reflection]}",
            context={"reflection": value},
        )


def validate_rotation(rotation: int) -> int:
    if isinstance(rotation, bool) or rotation not in ROTATIONS:
        raise InvalidTransformationError(
            f"Invalid rotation {rotation!r}, expected one of {ROTATIONS}", context={"rotation": rotation}
        )
    return int(rotation)


@dataclass(frozen=True)
class BoardTransformation:
    rotation: int = 0
    reflection: Reflection = Reflection.NONE
    invert_colors: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "rotation", validate_rotation(self.rotation))
        object.__setattr__(self, "reflection", parse_reflection(self.reflection))
        object.__setattr__(self, "invert_colors", bool(self.invert_colors))

    @property
    def is_identity(self) -> bool:
        return self.rotation == 0 and self.reflection is Reflection.NONE and not self.invert_colors

    def inverse(self) -> "BoardTransformation":
        """The transformation that undoes this one.

        A reflection composed with a rotation is itself a reflection, so it is its own
        inverse; a pure rotation is undone by the counter-rotation.
        """
        if self.reflection is Reflection.NONE:
            return replace(self, rotation=(360 - self.rotation) % 360)
        return self

    def rotated(self, direction: str = CLOCKWISE) -> "BoardTransformation":
        if direction == CLOCKWISE:
            change = 90
        elif direction == COUNTERCLOCKWISE:
            change = -90
        else:
            raise InvalidTransformationError(f"Invalid rotation direction {direction!r}")
        return replace(self, rotation=(self.rotation + change + 360) % 360)

    def reflected(self, kind: Union[str, Reflection]) -> "BoardTransformation":
        """Toggles a reflection: choosing the active one again switches it off."""
        kind = parse_reflection(kind)
        return replace(self, reflection=Reflection.NONE if self.reflection is kind else kind)

    def with_inverted_colors(self) -> "BoardTransformation":
        return replace(self, invert_colors=not self.invert_colors)

    def describe(self) -> str:
        parts = [f"rotation {self.rotation}", f"reflection {self.reflection.value}"]
        if self.invert_colors:
            parts.append("inverted colors")
        return ", ".join(parts)


IDENTITY = BoardTransformation()


def random_transformation(rng: Optional[random.Random] = None) -> BoardTransformation:
    rng = rng or random.Random()
    return BoardTransformation(
        rotation=rng.choice(ROTATIONS),
        reflection=rng.choice(list(Reflection)),
        invert_colors=rng.random() < 0.5,
    )


def all_transformations() -> list[BoardTransformation]:
    """Every combination, 4 rotations x 4 reflections x 2 color modes. No symmetry dedup."""
    return [
        BoardTransformation(rotation, reflection, invert)
        for rotation in ROTATIONS
        for reflection in Reflection
        for invert in (False, True)
    ]


def _rotate_step(vertex: Vertex, board_size: int) -> Vertex:
    """One 90 degree clockwise step."""
    x, y = vertex
    return y, board_size - 1 - x


def _rotate(vertex: Vertex, rotation: int, board_size: int) -> Vertex:
    x, y = vertex
    if rotation == 90:
        return y, board_size - 1 - x
    if rotation == 180:
        return board_size - 1 - x, board_size - 1 - y
    if rotation == 270:
        return board_size - 1 - y, x
    return x, y


def _reflect(vertex: Vertex, reflection: Reflection, board_size: int) -> Vertex:
    x, y = vertex
    if reflection is Reflection.HORIZONTAL:
        return x, board_size - 1 - y
    if reflection is Reflection.VERTICAL:
        return board_size - 1 - x, y
    if reflection is Reflection.DIAGONAL:
        return y, x
    return x, y


def _check_vertex(vertex: Vertex, board_size: int) -> None:
    x, y = vertex
    if not (0 <= x < board_size and 0 <= y < board_size):
        raise ValueError(f"Vertex {vertex} is outside a {board_size}x{board_size} board")


def transform_vertex(vertex: Vertex, transformation: BoardTransformation, board_size: int) -> Vertex:
    """Original-space vertex to display space: rotate, then reflect."""
    _check_vertex(vertex, board_size)
    rotated = _rotate(vertex, transformation.rotation, board_size)
    return _reflect(rotated, transformation.reflection, board_size)


def inverse_transform_vertex(vertex: Vertex, transformation: BoardTransformation, board_size: int) -> Vertex:
    """Display-space vertex back to original space.

    Undoes the forward steps in reverse order: the reflection (self-inverse) first,
    then the counter-rotation as repeated clockwise quarter turns.
    """
    _check_vertex(vertex, board_size)
    vertex = _reflect(vertex, transformation.reflection, board_size)
    for _ in range(((360 - transformation.rotation) % 360) // 90):
        vertex = _rotate_step(vertex, board_size)
    return vertex


def transform_sign(sign: int, transformation: BoardTransformation) -> int:
    """Negates stone colors when colors are inverted; empty is unaffected."""
    return -sign if transformation.invert_colors else sign


def transform_range(board_range: BoardRange, transformation: BoardTransformation, board_size: int) -> BoardRange:
    """Bounding rectangle of a range after transforming both of its corners."""
    a, b = board_range.corners
    return BoardRange.from_corners(
        transform_vertex(a, transformation, board_size), transform_vertex(b, transformation, board_size)
    )


def inverse_transform_range(
    board_range: BoardRange, transformation: BoardTransformation, board_size: int
) -> BoardRange:
    return transform_range(board_range, transformation.inverse(), board_size)


_COLOR_WORDS = {"Black": "White", "black": "white", "White": "Black", "white": "black"}
_COLOR_PATTERN = re.compile(r"Black|black|White|white")


def transform_comment(comment: str, transformation: BoardTransformation) -> str:
    """Swaps the words Black/black and White/white when colors are inverted."""
    if not transformation.invert_colors or not comment:
        return comment
    return _COLOR_PATTERN.sub(lambda m: _COLOR_WORDS[m.group()], comment)


def transform_board(board: Board, transformation: BoardTransformation) -> Board:
    """Maps every stone of a position through the vertex transform and color inversion."""
    if transformation.is_identity:
        return board
    size = board.size
    stones = {
        transform_vertex(vertex, transformation, size): transform_sign(sign, transformation)
        for vertex, sign in board.stones().items()
    }
    return Board.from_stones(size, stones)
