"""Immutable Go board: stone placement, capture resolution and simple ko.

Every operation returns a new Board, so a board value can be shared freely
between the projector, the session and any caller holding an older position.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from goalchemy.core.constants import BLACK, EMPTY, MAX_BOARD_SIZE, MIN_BOARD_SIZE, WHITE
from goalchemy.core.coords import Vertex, opponent, sign_name
from goalchemy.core.errors import IllegalMoveError

SignMap = Tuple[Tuple[int, ...], ...]


@dataclass(frozen=True)
class MoveAnalysis:
    """Result of testing a move without committing it."""

    off_board: bool = False
    overwrite: bool = False
    suicide: bool = False
    ko: bool = False
    capturing: bool = False

    @property
    def legal(self) -> bool:
        return not (self.off_board or self.overwrite or self.suicide or self.ko)

    @property
    def pass_(self) -> bool:
        """True when the move can not be played, mirrors the rules-engine ``pass`` flag."""
        return not self.legal


class Board:
    """Square Go board with signs ``BLACK``, ``WHITE`` and ``EMPTY`` indexed as ``[y][x]``."""

    __slots__ = ("size", "_signs", "_ko", "_captures")

    def __init__(
        self,
        signs: SignMap,
        ko: Optional[Tuple[int, Vertex]] = None,
        captures: Tuple[int, int] = (0, 0),
    ):
        size = len(signs)
        if not (MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE) or any(len(row) != size for row in signs):
            raise ValueError(f"Board must be square with size in [{MIN_BOARD_SIZE}, {MAX_BOARD_SIZE}]")
        self.size = size
        self._signs = signs
        self._ko = ko  # (sign that may not play, vertex)
        self._captures = captures  # stones captured by (black, white)

    @classmethod
    def from_dimensions(cls, size: int) -> "Board":
        return cls(tuple((EMPTY,) * size for _ in range(size)))

    @classmethod
    def from_sign_map(cls, rows: Iterable[Iterable[int]]) -> "Board":
        return cls(tuple(tuple(int(s) for s in row) for row in rows))

    @classmethod
    def from_stones(cls, size: int, stones: Dict[Vertex, int]) -> "Board":
        return cls.from_dimensions(size).with_stones(stones)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._signs == other._signs

    def __hash__(self) -> int:
        return hash(self._signs)

    def __repr__(self) -> str:
        return f"Board(size={self.size}, stones={len(self.stones())})"

    def __str__(self) -> str:
        chars = {BLACK: "X", WHITE: "O", EMPTY: "."}
        return "\n".join(" ".join(chars[s] for s in row) for row in self._signs)

    @property
    def sign_map(self) -> SignMap:
        return self._signs

    @property
    def captures(self) -> Dict[int, int]:
        """Number of stones captured by each color."""
        return {BLACK: self._captures[0], WHITE: self._captures[1]}

    @property
    def ko_vertex(self) -> Optional[Vertex]:
        return self._ko[1] if self._ko else None

    def has(self, vertex: Vertex) -> bool:
        x, y = vertex
        return 0 <= x < self.size and 0 <= y < self.size

    def get(self, vertex: Vertex) -> int:
        """Sign at a vertex; vertices off the board read as empty."""
        if not self.has(vertex):
            return EMPTY
        x, y = vertex
        return self._signs[y][x]

    def stones(self) -> Dict[Vertex, int]:
        """All occupied vertices and their sign."""
        return {
            (x, y): sign
            for y, row in enumerate(self._signs)
            for x, sign in enumerate(row)
            if sign != EMPTY
        }

    def is_empty(self) -> bool:
        return all(sign == EMPTY for row in self._signs for sign in row)

    def neighbors(self, vertex: Vertex) -> List[Vertex]:
        x, y = vertex
        return [v for v in ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1)) if self.has(v)]

    def chain(self, vertex: Vertex) -> FrozenSet[Vertex]:
        """Connected stones of the same sign containing the vertex."""
        return frozenset(self._chain(self._signs, vertex))

    def liberties(self, vertex: Vertex) -> FrozenSet[Vertex]:
        return frozenset(self._liberties(self._signs, self._chain(self._signs, vertex)))

    def _chain(self, signs: SignMap, vertex: Vertex) -> Set[Vertex]:
        x, y = vertex
        sign = signs[y][x]
        if sign == EMPTY:
            return set()
        chain = {vertex}
        stack = [vertex]
        while stack:
            for n in self.neighbors(stack.pop()):
                if n not in chain and signs[n[1]][n[0]] == sign:
                    chain.add(n)
                    stack.append(n)
        return chain

    def _liberties(self, signs: SignMap, chain: Set[Vertex]) -> Set[Vertex]:
        return {n for v in chain for n in self.neighbors(v) if signs[n[1]][n[0]] == EMPTY}

    @staticmethod
    def _set(signs: List[List[int]], vertices: Iterable[Vertex], sign: int) -> None:
        for x, y in vertices:
            signs[y][x] = sign

    def with_stones(self, stones: Dict[Vertex, int]) -> "Board":
        """Place (or clear, with ``EMPTY``) stones directly, without captures. Used for setup properties."""
        signs = [list(row) for row in self._signs]
        for vertex, sign in stones.items():
            if not self.has(vertex):
                raise ValueError(f"Vertex {vertex} is outside a {self.size}x{self.size} board")
            signs[vertex[1]][vertex[0]] = sign
        return Board(tuple(tuple(row) for row in signs), None, self._captures)

    def _resolve(self, sign: int, vertex: Vertex) -> Tuple[MoveAnalysis, Optional[SignMap], Set[Vertex]]:
        if sign not in (BLACK, WHITE):
            raise ValueError(f"Sign {sign} can not be played")
        if not self.has(vertex):
            return MoveAnalysis(off_board=True), None, set()
        if self.get(vertex) != EMPTY:
            return MoveAnalysis(overwrite=True), None, set()
        if self._ko is not None and self._ko == (sign, vertex):
            return MoveAnalysis(ko=True), None, set()

        signs = [list(row) for row in self._signs]
        self._set(signs, [vertex], sign)
        frozen = tuple(tuple(row) for row in signs)
        captured: Set[Vertex] = set()
        for n in self.neighbors(vertex):
            if frozen[n[1]][n[0]] == opponent(sign) and n not in captured:
                chain = self._chain(frozen, n)
                if not self._liberties(frozen, chain):
                    captured |= chain
        if captured:
            self._set(signs, captured, EMPTY)
            frozen = tuple(tuple(row) for row in signs)
        elif not self._liberties(frozen, self._chain(frozen, vertex)):
            return MoveAnalysis(suicide=True), None, set()
        return MoveAnalysis(capturing=bool(captured)), frozen, captured

    def analyze_move(self, sign: int, vertex: Vertex) -> MoveAnalysis:
        """Tests a move for legality without committing it."""
        return self._resolve(sign, vertex)[0]

    def make_move(self, sign: int, vertex: Vertex) -> Optional["Board"]:
        """Plays a move and resolves captures. Returns None when the move is illegal."""
        analysis, signs, captured = self._resolve(sign, vertex)
        if signs is None:
            return None
        ko = None
        if len(captured) == 1:
            own_chain = self._chain(signs, vertex)
            if len(own_chain) == 1 and self._liberties(signs, own_chain) == captured:
                ko = (opponent(sign), next(iter(captured)))
        black_caps, white_caps = self._captures
        if sign == BLACK:
            black_caps += len(captured)
        else:
            white_caps += len(captured)
        return Board(signs, ko, (black_caps, white_caps))

    def play(self, sign: int, vertex: Vertex) -> "Board":
        """Like make_move, but raises IllegalMoveError instead of returning None."""
        board = self.make_move(sign, vertex)
        if board is None:
            analysis = self.analyze_move(sign, vertex)
            reason = next(
                name for name in ("off_board", "overwrite", "suicide", "ko") if getattr(analysis, name)
            )
            raise IllegalMoveError(
                f"Illegal move for {sign_name(sign)} at {vertex}: {reason}",
                context={"vertex": vertex, "sign": sign, "reason": reason},
            )
        return board
