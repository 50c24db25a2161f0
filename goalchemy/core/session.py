"""The puzzle session: one owning controller per open puzzle.

A session holds the navigator (tree value and current node), the projector (display
board under the active transformation), the pending auto-play timer and the loading
state. Presentation code talks only to this object and listens to its notifier.

Threading:
    Loads may finish on a worker thread and auto-play fires on a timer thread, so every
    state change happens under the session's RLock. A load started later supersedes an
    earlier one: the earlier result is dropped when it arrives. An auto-play reply is
    dropped when the position it was scheduled for is no longer current.
"""

import logging
import random
import threading
from typing import Callable, List, Optional, Protocol, Union

from goalchemy.common.typed_config import PuzzleSettings
from goalchemy.core.board import Board
from goalchemy.core.constants import AUTO_PLAY_RANDOM, BLACK, MAX_BOARD_SIZE, MIN_BOARD_SIZE
from goalchemy.core.coords import BoardRange, Vertex, opponent
from goalchemy.core.errors import AssetLoadError, InconsistentTreeError, MalformedSgfError
from goalchemy.core.game_tree import GameTree, GameTreeNode, IdGenerator, NodeId, make_id_generator
from goalchemy.core.library import ProblemEntry, ProblemLibrary
from goalchemy.core.navigator import NavigationState, PuzzleNavigator
from goalchemy.core.projector import BoardProjector, HintMark, Markup, verify_tree
from goalchemy.core.scheduler import Scheduler, ThreadingScheduler, TimerHandle
from goalchemy.core.state import EventType, StateNotifier
from goalchemy.core.transforms import (
    CLOCKWISE,
    IDENTITY,
    BoardTransformation,
    Reflection,
    random_transformation as sample_transformation,
)

_log = logging.getLogger(__name__)


class SgfLoader(Protocol):
    def load_sgf_text(self, category: str, problem_id: int) -> str: ...


class PuzzleSession:
    def __init__(
        self,
        loader: Optional[SgfLoader] = None,
        settings: Optional[PuzzleSettings] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        get_id: Optional[IdGenerator] = None,
        notifier: Optional[StateNotifier] = None,
    ):
        self.loader = loader
        self.settings = settings or PuzzleSettings()
        self.scheduler = scheduler or ThreadingScheduler()
        self.rng = rng or random.Random()
        self.notifier = notifier or StateNotifier()
        self._get_id = get_id or make_id_generator()
        self.navigator = PuzzleNavigator(self.notifier)
        self.projector = BoardProjector(self.navigator, self.settings.board_size, self._initial_transformation())
        self.problem: Optional[ProblemEntry] = None
        self._lock = threading.RLock()
        self._is_loading = False
        self._load_token = 0
        self._auto_play_timer: Optional[TimerHandle] = None
        self._auto_play_generation = 0
        self._closed = False

    def __repr__(self) -> str:
        return f"PuzzleSession(problem={self.problem!r}, loading={self._is_loading}, {self.transformation.describe()})"

    def _initial_transformation(self) -> BoardTransformation:
        return sample_transformation(self.rng) if self.settings.randomize_board else IDENTITY

    # -- loading -----------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def _begin_load(self) -> int:
        with self._lock:
            self._load_token += 1
            self.cancel_auto_play()
            if not self._is_loading:
                self._is_loading = True
                self.notifier.emit(EventType.LOADING_CHANGED, loading=True)
            return self._load_token

    def _problem_entry(self, category: str, problem_id: int) -> Optional[ProblemEntry]:
        if isinstance(self.loader, ProblemLibrary):
            return self.loader.get(category, problem_id)
        return None

    def load_problem(self, category: str, problem_id: int) -> bool:
        """Loads a problem through the loader and installs it.

        Returns False when a later load superseded this one before it finished.
        Raises AssetLoadError (after logging it) and stays in the loading state when the
        problem can not be read.
        """
        if self.loader is None:
            raise AssetLoadError("No problem loader configured", context={"category": category})
        token = self._begin_load()
        _log.debug("Loading problem %s/%s", category, problem_id)
        try:
            entry = self._problem_entry(category, problem_id)
            sgf_text = self.loader.load_sgf_text(category, problem_id)
        except AssetLoadError as e:
            _log.warning("Failed to load problem %s/%s: %s", category, problem_id, e, exc_info=True)
            raise
        with self._lock:
            if token != self._load_token or self._closed:
                _log.debug("Dropping superseded load of %s/%s", category, problem_id)
                return False
            self.problem = entry
            if entry is None:
                self._install(sgf_text)
            else:
                self._install(sgf_text, entry.board_size, entry.board_range, entry.color)
            return True

    def load_problem_in_background(
        self,
        category: str,
        problem_id: int,
        on_error: Optional[Callable[[AssetLoadError], None]] = None,
    ) -> threading.Thread:
        """Runs load_problem on a daemon thread. Load failures go to ``on_error`` (and the log)."""

        def run() -> None:
            try:
                self.load_problem(category, problem_id)
            except AssetLoadError as e:
                if on_error is not None:
                    on_error(e)

        thread = threading.Thread(target=run, name=f"load-{category}-{problem_id}", daemon=True)
        thread.start()
        return thread

    def load_sgf(
        self,
        sgf_text: str,
        board_size: Optional[int] = None,
        board_range: Optional[BoardRange] = None,
        player_color: int = BLACK,
    ) -> GameTreeNode:
        """Installs a puzzle from SGF text directly; returns the starting node."""
        self._begin_load()
        with self._lock:
            self.problem = None
            return self._install(sgf_text, board_size, board_range, player_color)

    def _install(
        self,
        sgf_text: str,
        board_size: Optional[int] = None,
        board_range: Optional[BoardRange] = None,
        player_color: int = BLACK,
    ) -> GameTreeNode:
        self.cancel_auto_play()
        self.projector.transformation = self._initial_transformation()
        try:
            tree = GameTree.from_sgf(sgf_text, self._get_id)
            size = board_size or (tree.board_size if "SZ" in tree.root.data else self.settings.board_size)
            if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
                raise MalformedSgfError(f"Unsupported board size {size}")
            self.projector.reset(size, player_color, self._fit_range(board_range, size))
            starting_node = self.navigator.load(tree)
            checked = verify_tree(tree, starting_node.id, size)
            _log.debug("Verified %d replayable nodes", checked)
        except (MalformedSgfError, InconsistentTreeError) as e:
            _log.warning("Malformed puzzle, falling back to an empty board: %s", e, exc_info=True)
            size = board_size if board_size and MIN_BOARD_SIZE <= board_size <= MAX_BOARD_SIZE else None
            size = size or self.settings.board_size
            self.projector.reset(size, player_color, self._fit_range(board_range, size))
            starting_node = self.navigator.load(GameTree(self._get_id))
        self._is_loading = False
        self.notifier.emit(EventType.LOADING_CHANGED, loading=False)
        _log.debug("Puzzle ready: %d nodes, %s", len(self.navigator.game_tree), self.transformation.describe())
        return starting_node

    @staticmethod
    def _fit_range(board_range: Optional[BoardRange], board_size: int) -> Optional[BoardRange]:
        if board_range is None or board_range.fits(board_size):
            return board_range
        _log.warning("Board range %s does not fit a %dx%d board, clamping", board_range, board_size, board_size)
        return board_range.clamped(board_size)

    def close(self) -> None:
        """Cancels pending work; later loads and auto-play results are ignored."""
        with self._lock:
            self._closed = True
            self._load_token += 1
            self.cancel_auto_play()

    # -- accessors ---------------------------------------------------------

    @property
    def game_tree(self) -> Optional[GameTree]:
        return self.navigator.game_tree

    @property
    def current_node(self) -> Optional[GameTreeNode]:
        return self.navigator.current_node

    @property
    def starting_node(self) -> Optional[GameTreeNode]:
        return self.navigator.starting_node

    @property
    def current_comment(self) -> Optional[str]:
        return self.projector.comment

    @property
    def board(self) -> Board:
        return self.projector.board

    @property
    def board_size(self) -> int:
        return self.projector.board_size

    @property
    def current_player(self) -> int:
        return self.projector.current_player

    @property
    def player_color(self) -> int:
        """The side the user plays, in display colors."""
        return self.projector.display_player_color

    @property
    def visible_range(self) -> BoardRange:
        return self.projector.visible_range

    def hints(self) -> List[HintMark]:
        return self.projector.hints() if self.settings.show_hints else []

    def markup(self) -> List[Markup]:
        return self.projector.markup()

    def is_valid_move(self, vertex: Vertex) -> bool:
        return not self._is_loading and self.projector.is_valid_move(vertex)

    # -- navigation --------------------------------------------------------

    @property
    def can_navigate(self) -> NavigationState:
        return self.navigator.can_navigate

    def _navigate(self, step: Callable[[], bool]) -> bool:
        with self._lock:
            self.cancel_auto_play()
            return step()

    def forward(self) -> bool:
        return self._navigate(self.navigator.forward)

    def backward(self) -> bool:
        return self._navigate(self.navigator.backward)

    def first(self) -> bool:
        return self._navigate(self.navigator.first)

    def last(self) -> bool:
        return self._navigate(self.navigator.last)

    # -- moves -------------------------------------------------------------

    def place_stone(self, vertex: Vertex) -> bool:
        """Plays the player to move at a display-space vertex. False when illegal or not ready."""
        with self._lock:
            if self._is_loading or self._closed:
                _log.warning("Cannot place stone at %s: session not ready", vertex)
                return False
            node = self.projector.place_stone(vertex)
            if node is None:
                return False
            self.cancel_auto_play()
            if self.settings.auto_play_opponent:
                self._schedule_auto_play(node)
            return True

    def opponent_replies(self, node: GameTreeNode) -> List[GameTreeNode]:
        """Recorded children of ``node`` played by the other side."""
        if node.move is None:
            return []
        replier = opponent(node.move[0])
        return [child for child in self.game_tree.children(node.id) if child.move and child.move[0] == replier]

    def _schedule_auto_play(self, node: GameTreeNode) -> None:
        if not self.opponent_replies(node):
            return
        tree = self.game_tree
        self._auto_play_generation += 1
        generation = self._auto_play_generation
        _log.debug("Scheduling auto-play reply to node %r in %.2fs", node.id, self.settings.auto_play_delay)
        self._auto_play_timer = self.scheduler.call_later(
            self.settings.auto_play_delay, lambda: self._auto_play(tree, node.id, generation)
        )

    def _auto_play(self, tree: GameTree, node_id: NodeId, generation: int) -> None:
        with self._lock:
            # a timer that fired after being cancelled or replaced leaves the newer one alone
            if generation != self._auto_play_generation:
                _log.debug("Auto-play for node %r was cancelled", node_id)
                return
            self._auto_play_timer = None
            current = self.navigator.current_node
            if self._closed or self.game_tree is not tree or current is None or current.id != node_id:
                _log.debug("Auto-play for node %r superseded", node_id)
                return
            replies = self.opponent_replies(current)
            if not replies:
                return
            if self.settings.auto_play_policy == AUTO_PLAY_RANDOM:
                reply = self.rng.choice(replies)
            else:
                reply = replies[0]
            _log.debug("Auto-playing reply %r", reply.id)
            self.navigator.set_current(reply.id)

    def cancel_auto_play(self) -> None:
        with self._lock:
            self._auto_play_generation += 1
            if self._auto_play_timer is not None:
                self._auto_play_timer.cancel()
                self._auto_play_timer = None

    @property
    def auto_play_pending(self) -> bool:
        return self._auto_play_timer is not None

    # -- transformation ----------------------------------------------------

    @property
    def transformation(self) -> BoardTransformation:
        return self.projector.transformation

    def set_transformation(self, transformation: BoardTransformation) -> None:
        with self._lock:
            self.projector.transformation = transformation
            self.notifier.emit(EventType.TRANSFORMATION_CHANGED, transformation=transformation)

    def rotate(self, direction: str = CLOCKWISE) -> BoardTransformation:
        self.set_transformation(self.transformation.rotated(direction))
        return self.transformation

    def reflect(self, kind: Union[str, Reflection]) -> BoardTransformation:
        self.set_transformation(self.transformation.reflected(kind))
        return self.transformation

    def toggle_color_inversion(self) -> BoardTransformation:
        self.set_transformation(self.transformation.with_inverted_colors())
        return self.transformation

    def random_transformation(self) -> BoardTransformation:
        self.set_transformation(sample_transformation(self.rng))
        return self.transformation

    def apply_settings(self, settings: PuzzleSettings) -> None:
        """New settings take effect from the next move; a pending auto-play keeps its timing."""
        with self._lock:
            self.settings = settings
