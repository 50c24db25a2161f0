"""Puzzle navigation over an immutable game tree.

The navigator owns the session's view of the tree: the current tree value, the
setup ("starting") node found at load time, and the current node. The starting
node is a navigational floor; ``backward`` never leaves it even when the tree has
nodes above it.

Before a tree is loaded every operation is a logged no-op, never an exception.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from goalchemy.core.coords import Vertex, sign_to_player, vertex_to_sgf
from goalchemy.core.errors import NodeNotFoundError
from goalchemy.core.game_tree import GameTree, GameTreeNode, NodeId
from goalchemy.core.state import EventType, StateNotifier

_log = logging.getLogger(__name__)


def find_setup_node(tree: GameTree) -> GameTreeNode:
    """Walks the main line from the root to the node holding the initial position.

    That is the first node with AB/AW setup stones, or the parent of the first node
    with a B/W move, whichever comes first. Falls back to the root (empty-board puzzle).
    The walk is bounded by the node count.
    """
    node = tree.root
    for _ in range(len(tree)):
        if node.data.is_setup:
            return node
        if node.data.has_move:
            return tree.get(node.parent_id) if node.parent_id is not None else node
        if not node.children:
            break
        node = tree.get(node.children[0])
    return tree.root


@dataclass(frozen=True)
class NavigationState:
    forward: bool = False
    backward: bool = False


class PuzzleNavigator:
    def __init__(self, notifier: Optional[StateNotifier] = None):
        self.notifier = notifier or StateNotifier()
        self._tree: Optional[GameTree] = None
        self._starting_id: Optional[NodeId] = None
        self._current_id: Optional[NodeId] = None

    # -- state -------------------------------------------------------------

    @property
    def game_tree(self) -> Optional[GameTree]:
        return self._tree

    @property
    def starting_node(self) -> Optional[GameTreeNode]:
        if self._tree is None or self._starting_id is None:
            return None
        return self._tree.get(self._starting_id)

    @property
    def current_node(self) -> Optional[GameTreeNode]:
        if self._tree is None:
            return None
        self.ensure_current()
        return self._tree.get(self._current_id) if self._current_id is not None else None

    @property
    def is_ready(self) -> bool:
        return self._tree is not None and self._current_id is not None

    def load(self, tree: GameTree) -> GameTreeNode:
        """Installs a new tree and moves to its setup node."""
        setup = find_setup_node(tree)
        self._tree = tree
        self._starting_id = setup.id
        self._current_id = setup.id
        _log.debug("Loaded tree with %d nodes, starting node %r", len(tree), setup.id)
        self.notifier.emit(EventType.TREE_CHANGED, node_count=len(tree))
        self.notifier.emit(EventType.NODE_CHANGED, node_id=setup.id)
        return setup

    def ensure_current(self) -> bool:
        """Recovers a missing or dangling current node by resetting to the starting node (or root).

        Returns True when a reset happened.
        """
        if self._tree is None:
            return False
        if self._current_id is not None and self._current_id in self._tree:
            return False
        if self._starting_id is None or self._starting_id not in self._tree:
            self._starting_id = find_setup_node(self._tree).id
        _log.warning("Current node %r not in tree, resetting to %r", self._current_id, self._starting_id)
        self._current_id = self._starting_id
        return True

    def set_current(self, node_id: NodeId) -> GameTreeNode:
        """Moves to a node of the current tree. Raises NodeNotFoundError and keeps state otherwise."""
        if self._tree is None:
            raise NodeNotFoundError(node_id, context={"reason": "no tree loaded"})
        node = self._tree.get(node_id)
        if node.id != self._current_id:
            self._current_id = node.id
            self.notifier.emit(EventType.NODE_CHANGED, node_id=node.id)
        return node

    # -- navigation --------------------------------------------------------

    @property
    def can_navigate(self) -> NavigationState:
        node = self.current_node
        if node is None:
            return NavigationState()
        return NavigationState(
            forward=bool(node.children),
            backward=node.id != self._starting_id and node.parent_id is not None,
        )

    def forward(self) -> bool:
        _log.debug("Attempting to navigate forward")
        node = self.current_node
        if node is None or not node.children:
            return False
        self.set_current(node.children[0])
        return True

    def backward(self) -> bool:
        _log.debug("Attempting to navigate backward")
        if not self.can_navigate.backward:
            return False
        self.set_current(self.current_node.parent_id)
        return True

    def first(self) -> bool:
        _log.debug("Attempting to navigate to first")
        if self._tree is None or self._starting_id is None:
            return False
        self.set_current(self._starting_id)
        return True

    def last(self) -> bool:
        _log.debug("Attempting to navigate to last")
        node = self.current_node
        if node is None:
            return False
        self.set_current(self._tree.main_line(node.id)[-1].id)
        return True

    # -- moves -------------------------------------------------------------

    def find_child_move(self, vertex: Vertex, sign: int) -> Optional[GameTreeNode]:
        """First child of the current node playing ``sign`` at ``vertex``."""
        node = self.current_node
        if node is None:
            return None
        move_property = sign_to_player(sign)
        coord = vertex_to_sgf(vertex)
        for child_id in node.children:
            child = self._tree.get(child_id)
            if child.data.get(move_property, (None,))[0] == coord:
                return child
        return None

    def add_move(self, vertex: Vertex, sign: int) -> Optional[GameTreeNode]:
        """Plays a move from the current node.

        Snaps onto an existing variation with the same move when there is one, otherwise
        appends a new child node (a new tree value) and moves to it.
        """
        if self._tree is None or self.current_node is None:
            _log.warning("Cannot add move %s: game tree or current node not set", vertex)
            return None

        existing = self.find_child_move(vertex, sign)
        if existing is not None:
            _log.debug("Move %s matches existing variation %r", vertex, existing.id)
            return self.set_current(existing.id)

        move_property = sign_to_player(sign)
        parent_id = self._current_id
        added: list[NodeId] = []
        self._tree = self._tree.mutate(
            lambda draft: added.append(draft.append_node(parent_id, {move_property: [vertex_to_sgf(vertex)]}))
        )
        _log.debug("Added new variation %r under %r for %s", added[0], parent_id, vertex)
        self.notifier.emit(EventType.TREE_CHANGED, node_count=len(self._tree))
        return self.set_current(added[0])
