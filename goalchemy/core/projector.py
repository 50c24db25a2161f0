"""Board positions for display.

The projector replays the moves from the starting (setup) node down to the current
node to get the position in original, stored coordinates, then maps it through the
active BoardTransformation for display. Everything stored in the tree stays in
original space; only what is handed to callers is in display space.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from goalchemy.core.board import Board
from goalchemy.core.constants import BLACK, DEFAULT_BOARD_SIZE, HINT_CORRECT, HINT_INCORRECT
from goalchemy.core.coords import BoardRange, Vertex, opponent, sgf_to_vertex
from goalchemy.core.errors import IllegalMoveError, InconsistentTreeError, MalformedSgfError
from goalchemy.core.game_tree import MARKUP_PROPERTIES, SETUP_PROPERTIES, GameTree, GameTreeNode, NodeId
from goalchemy.core.navigator import PuzzleNavigator
from goalchemy.core.transforms import (
    IDENTITY,
    BoardTransformation,
    inverse_transform_vertex,
    transform_board,
    transform_comment,
    transform_range,
    transform_sign,
    transform_vertex,
)

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HintMark:
    vertex: Vertex  # display space
    correct: bool


@dataclass(frozen=True)
class Markup:
    kind: str  # LB, CR, TR, SQ or MA
    vertex: Vertex  # display space
    text: str = ""


def setup_board(node: GameTreeNode, board_size: int) -> Board:
    """Empty board with the node's AB/AW (and AE) setup stones placed."""
    try:
        return Board.from_dimensions(board_size).with_stones(node.data.setup_stones)
    except (ValueError, MalformedSgfError) as e:
        raise InconsistentTreeError(f"Setup stones of node {node.id!r} do not fit the board: {e}") from e


def replay_node(node: GameTreeNode, board: Board) -> Board:
    """Applies one node's setup stones and move to the position before it."""
    try:
        if any(key in node.data for key in SETUP_PROPERTIES):
            board = board.with_stones(node.data.setup_stones)
        move = node.data.move
        if move is not None:
            board = board.play(move[0], sgf_to_vertex(move[1]))
    except (IllegalMoveError, ValueError, MalformedSgfError) as e:
        raise InconsistentTreeError(
            f"Can not replay node {node.id!r}: {e}", context={"node_id": node.id, "data": node.data.as_dict()}
        ) from e
    return board


def replay(tree: GameTree, start_id: NodeId, node_id: NodeId, board: Board) -> Board:
    """Plays the moves on the path below ``start_id`` down to ``node_id``.

    A stored move the rules reject means the tree is inconsistent, which is fatal.
    """
    for node in tree.path(start_id, node_id):
        board = replay_node(node, board)
    return board


def verify_tree(tree: GameTree, start_id: NodeId, board_size: int) -> int:
    """Replays every line below the starting node, each node from its parent's position.

    Returns the number of nodes checked. Raises InconsistentTreeError at the first
    node the rules reject, so a broken puzzle fails at load time and not on navigation.
    """
    stack = [(start_id, setup_board(tree.get(start_id), board_size))]
    checked = 0
    while stack:
        node_id, board = stack.pop()
        checked += 1
        for child in tree.children(node_id):
            stack.append((child.id, replay_node(child, board)))
    return checked


class BoardProjector:
    def __init__(
        self,
        navigator: PuzzleNavigator,
        board_size: int = DEFAULT_BOARD_SIZE,
        transformation: BoardTransformation = IDENTITY,
        player_color: int = BLACK,
        board_range: Optional[BoardRange] = None,
    ):
        self.navigator = navigator
        self.board_size = board_size
        self.transformation = transformation
        self.player_color = player_color  # original space
        self.board_range = board_range or BoardRange.full(board_size)  # original space
        self._cache: Optional[Tuple[GameTree, NodeId, Board]] = None

    def reset(self, board_size: int, player_color: int, board_range: Optional[BoardRange] = None) -> None:
        self.board_size = board_size
        self.player_color = player_color
        self.board_range = board_range or BoardRange.full(board_size)
        self._cache = None

    # -- positions ---------------------------------------------------------

    @property
    def original_board(self) -> Board:
        """Current position in stored coordinates and colors."""
        tree = self.navigator.game_tree
        node = self.navigator.current_node
        start = self.navigator.starting_node
        if tree is None or node is None or start is None:
            return Board.from_dimensions(self.board_size)
        if self._cache is not None and self._cache[0] is tree and self._cache[1] == node.id:
            return self._cache[2]
        board = replay(tree, start.id, node.id, setup_board(start, self.board_size))
        self._cache = (tree, node.id, board)
        return board

    @property
    def board(self) -> Board:
        """Current position in display space."""
        return transform_board(self.original_board, self.transformation)

    # -- players -----------------------------------------------------------

    @property
    def original_player_to_move(self) -> int:
        """Whose turn it is in stored colors: the opponent of the last mover, or the player at the start."""
        tree = self.navigator.game_tree
        node = self.navigator.current_node
        start = self.navigator.starting_node
        if tree is None or node is None or start is None:
            return self.player_color
        for ancestor in tree.ancestors(node.id):
            if ancestor.id == start.id:
                break
            if ancestor.data.move is not None:
                return opponent(ancestor.data.move[0])
        return self.player_color

    @property
    def current_player(self) -> int:
        """Whose turn it is in display colors."""
        return transform_sign(self.original_player_to_move, self.transformation)

    @property
    def display_player_color(self) -> int:
        return transform_sign(self.player_color, self.transformation)

    # -- coordinates -------------------------------------------------------

    @property
    def visible_range(self) -> BoardRange:
        return transform_range(self.board_range, self.transformation, self.board_size)

    def to_display(self, vertex: Vertex) -> Vertex:
        return transform_vertex(vertex, self.transformation, self.board_size)

    def to_original(self, vertex: Vertex) -> Vertex:
        return inverse_transform_vertex(vertex, self.transformation, self.board_size)

    def _on_board(self, vertex: Vertex) -> bool:
        x, y = vertex
        return 0 <= x < self.board_size and 0 <= y < self.board_size

    # -- moves -------------------------------------------------------------

    def is_valid_move(self, vertex: Vertex) -> bool:
        """Tests a display-space move for the player to move, without playing it."""
        if not self.navigator.is_ready or not self._on_board(vertex):
            return False
        return self.original_board.analyze_move(self.original_player_to_move, self.to_original(vertex)).legal

    def place_stone(self, vertex: Vertex) -> Optional[GameTreeNode]:
        """Plays the player to move at a display-space vertex.

        Returns the node now current, or None when the move is illegal (no tree change).
        The tree always receives the original-space vertex and color.
        """
        if not self.navigator.is_ready:
            _log.warning("Cannot place stone at %s: no puzzle loaded", vertex)
            return None
        if not self._on_board(vertex):
            _log.debug("Rejected move %s: off board", vertex)
            return None
        original_vertex = self.to_original(vertex)
        color = self.original_player_to_move
        new_board = self.original_board.make_move(color, original_vertex)
        if new_board is None:
            _log.debug("Rejected illegal move %s (original %s)", vertex, original_vertex)
            return None
        node = self.navigator.add_move(original_vertex, color)
        if node is None:
            return None
        self._cache = (self.navigator.game_tree, node.id, new_board)
        return node

    # -- annotations -------------------------------------------------------

    @property
    def comment(self) -> Optional[str]:
        node = self.navigator.current_node
        if node is None or node.comment is None:
            return None
        return transform_comment(node.comment, self.transformation)

    def hints(self) -> List[HintMark]:
        """Correct/incorrect hint labels of the current node, in display space and inside the visible range."""
        node = self.navigator.current_node
        if node is None:
            return []
        visible = self.visible_range
        marks = []
        for coord, correct in node.data.hint_labels:
            vertex = self._display_point(coord)
            if vertex is not None and visible.contains(vertex):
                marks.append(HintMark(vertex, correct))
        return marks

    def markup(self) -> List[Markup]:
        """Labels and marks of the current node other than hint labels, in display space."""
        node = self.navigator.current_node
        if node is None:
            return []
        visible = self.visible_range
        marks = []
        for coord, text in node.data.labels:
            if text in (HINT_CORRECT, HINT_INCORRECT):
                continue
            vertex = self._display_point(coord)
            if vertex is not None and visible.contains(vertex):
                marks.append(Markup("LB", vertex, text))
        for kind in MARKUP_PROPERTIES[1:]:
            try:
                points = node.data.marks(kind)
            except MalformedSgfError:
                _log.debug("Skipping malformed %s markup on node %r", kind, node.id)
                continue
            for point in points:
                if not self._on_board(point):
                    continue
                vertex = self.to_display(point)
                if visible.contains(vertex):
                    marks.append(Markup(kind, vertex))
        return marks

    def _display_point(self, coord: str) -> Optional[Vertex]:
        try:
            point = sgf_to_vertex(coord)
        except MalformedSgfError:
            _log.debug("Skipping malformed label coordinate %r", coord)
            return None
        return self.to_display(point) if self._on_board(point) else None
