"""Immutable, branch-preserving game tree.

A GameTree is a value: nodes are frozen, ``mutate`` applies edits to a draft copy of
the id -> node table and returns a new GameTree, and the original stays valid for
anyone still holding it. Node ids come from an id generator that is shared along a
tree lineage, so ids are never reused by later mutations.

Usage:
    tree = GameTree.from_sgf("(;SZ[9]AB[cc];W[dd])")
    new_tree = tree.mutate(lambda draft: draft.append_node(tree.root_id, {"B": ["ee"]}))
"""

import itertools
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from goalchemy.core.constants import BLACK, HINT_CORRECT, HINT_INCORRECT, WHITE
from goalchemy.core.coords import Vertex, expand_sgf_points, sgf_to_vertex
from goalchemy.core.errors import MalformedSgfError, NodeNotFoundError
from goalchemy.core.sgf_parser import SGF, SGFNode

_log = logging.getLogger(__name__)

NodeId = Hashable
IdGenerator = Callable[[], NodeId]

MOVE_PROPERTIES = ("B", "W")
SETUP_PROPERTIES = ("AB", "AW", "AE")
MARKUP_PROPERTIES = ("LB", "CR", "TR", "SQ", "MA")
SINGLE_VALUED_PROPERTIES = frozenset({"B", "W", "C"})


def make_id_generator(start: int = 0) -> IdGenerator:
    """Monotonic integer ids; one generator per tree lineage."""
    counter = itertools.count(start)
    return lambda: next(counter)


class NodeData(Mapping):
    """Read-only SGF property bag of a node, property -> tuple of values, in insertion order.

    The properties this package consumes have typed accessors; any other property is kept
    as-is so that serialization round-trips it. Move and comment properties are single valued.
    """

    __slots__ = ("_props",)

    def __init__(self, properties: Optional[Mapping[str, Iterable[str]]] = None):
        props: Dict[str, Tuple[str, ...]] = {}
        for key, values in (properties or {}).items():
            if isinstance(values, str):
                values = [values]
            values = tuple(str(v) for v in values)
            if key in SINGLE_VALUED_PROPERTIES and len(values) > 1:
                raise MalformedSgfError(f"Property {key} expects a single value, got {list(values)}")
            if values:
                props[key] = values
        if "B" in props and "W" in props:
            raise MalformedSgfError("A node can not hold both a black and a white move")
        self._props = props

    def __getitem__(self, key: str) -> Tuple[str, ...]:
        return self._props[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def __repr__(self) -> str:
        return f"NodeData({self.as_dict()})"

    def as_dict(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._props.items()}

    def with_value(self, key: str, value: str) -> "NodeData":
        """A copy with one value appended to a property list."""
        if key in SINGLE_VALUED_PROPERTIES and key in self._props:
            raise MalformedSgfError(f"Property {key} already has a value")
        props = dict(self._props)
        props[key] = props.get(key, ()) + (str(value),)
        return NodeData(props)

    @property
    def move(self) -> Optional[Tuple[int, str]]:
        """(sign, sgf coordinate) of the node's move, or None. An empty value (pass) is not a move."""
        for key, sign in (("B", BLACK), ("W", WHITE)):
            if key in self._props and self._props[key][0]:
                return sign, self._props[key][0]
        return None

    @property
    def move_vertex(self) -> Optional[Vertex]:
        move = self.move
        return sgf_to_vertex(move[1]) if move else None

    @property
    def has_move(self) -> bool:
        return any(key in self._props for key in MOVE_PROPERTIES)

    @property
    def is_setup(self) -> bool:
        return "AB" in self._props or "AW" in self._props

    @property
    def setup_stones(self) -> Dict[Vertex, int]:
        """Setup placements as vertex -> sign, AE clears as EMPTY."""
        stones: Dict[Vertex, int] = {}
        for key, sign in (("AE", 0), ("AB", BLACK), ("AW", WHITE)):
            for vertex in expand_sgf_points(self._props.get(key, ())):
                stones[vertex] = sign
        return stones

    @property
    def comment(self) -> Optional[str]:
        return self._props["C"][0] if "C" in self._props else None

    @property
    def labels(self) -> List[Tuple[str, str]]:
        """LB values split into (coordinate, text)."""
        labels = []
        for value in self._props.get("LB", ()):
            coord, _, text = value.partition(":")
            labels.append((coord, text))
        return labels

    @property
    def hint_labels(self) -> List[Tuple[str, bool]]:
        """LB values written by the annotation pass: (coordinate, leads to correct)."""
        return [
            (coord, text == HINT_CORRECT) for coord, text in self.labels if text in (HINT_CORRECT, HINT_INCORRECT)
        ]

    def marks(self, key: str) -> List[Vertex]:
        return expand_sgf_points(self._props.get(key, ()))


@dataclass(frozen=True)
class GameTreeNode:
    id: NodeId
    data: NodeData
    parent_id: Optional[NodeId] = None
    children: Tuple[NodeId, ...] = field(default=())

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def move(self) -> Optional[Tuple[int, str]]:
        return self.data.move

    @property
    def comment(self) -> Optional[str]:
        return self.data.comment


class GameTreeDraft:
    """Scoped, editable copy of a tree's node table, handed to ``GameTree.mutate`` edit functions."""

    def __init__(self, tree: "GameTree"):
        self._nodes: Dict[NodeId, GameTreeNode] = dict(tree._nodes)
        self._root_id = tree.root_id
        self._get_id = tree._get_id

    @property
    def root_id(self) -> NodeId:
        return self._root_id

    def get(self, node_id: NodeId) -> GameTreeNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id)

    def append_node(self, parent_id: NodeId, data: Mapping[str, Iterable[str]]) -> NodeId:
        """Adds a node as the last child of ``parent_id`` and returns its new id."""
        parent = self.get(parent_id)
        node_id = self._get_id()
        if node_id in self._nodes:
            raise ValueError(f"Id generator returned an id already in use: {node_id!r}")
        self._nodes[node_id] = GameTreeNode(id=node_id, data=NodeData(data), parent_id=parent_id)
        self._nodes[parent_id] = replace(parent, children=parent.children + (node_id,))
        return node_id

    def add_to_property(self, node_id: NodeId, key: str, value: str) -> None:
        node = self.get(node_id)
        self._nodes[node_id] = replace(node, data=node.data.with_value(key, value))

    def commit(self) -> "GameTree":
        return GameTree._from_nodes(self._nodes, self._root_id, self._get_id)


class GameTree:
    """Immutable game tree value."""

    def __init__(
        self,
        get_id: Optional[IdGenerator] = None,
        root_data: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        self._get_id = get_id or make_id_generator()
        root = GameTreeNode(id=self._get_id(), data=NodeData(root_data))
        self._root_id = root.id
        self._nodes: Mapping[NodeId, GameTreeNode] = MappingProxyType({root.id: root})

    @classmethod
    def _from_nodes(cls, nodes: Dict[NodeId, GameTreeNode], root_id: NodeId, get_id: IdGenerator) -> "GameTree":
        tree = cls.__new__(cls)
        tree._get_id = get_id
        tree._root_id = root_id
        tree._nodes = MappingProxyType(dict(nodes))
        return tree

    @classmethod
    def from_sgf_node(cls, root: SGFNode, get_id: Optional[IdGenerator] = None) -> "GameTree":
        """Builds a tree from parser output, preserving child order."""
        get_id = get_id or make_id_generator()
        root_node = GameTreeNode(id=get_id(), data=NodeData(root.properties))
        nodes: Dict[NodeId, GameTreeNode] = {root_node.id: root_node}
        children_of: Dict[NodeId, List[NodeId]] = {root_node.id: []}
        stack = [(root_node.id, child) for child in reversed(root.children)]
        while stack:
            parent_id, sgf_node = stack.pop()
            node = GameTreeNode(id=get_id(), data=NodeData(sgf_node.properties), parent_id=parent_id)
            nodes[node.id] = node
            children_of[parent_id].append(node.id)
            children_of[node.id] = []
            stack.extend((node.id, child) for child in reversed(sgf_node.children))
        for node_id, children in children_of.items():
            nodes[node_id] = replace(nodes[node_id], children=tuple(children))
        return cls._from_nodes(nodes, root_node.id, get_id)

    @classmethod
    def from_sgf(cls, sgf_text: str, get_id: Optional[IdGenerator] = None) -> "GameTree":
        return cls.from_sgf_node(SGF.parse_sgf(sgf_text), get_id)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: Any) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return f"GameTree(nodes={len(self._nodes)}, root={self._root_id!r})"

    @property
    def root_id(self) -> NodeId:
        return self._root_id

    @property
    def root(self) -> GameTreeNode:
        return self._nodes[self._root_id]

    @property
    def board_size(self) -> int:
        return SGFNode(properties=self.root.data.as_dict()).board_size

    def get(self, node_id: NodeId) -> GameTreeNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id)

    def parent(self, node_id: NodeId) -> Optional[GameTreeNode]:
        parent_id = self.get(node_id).parent_id
        return None if parent_id is None else self.get(parent_id)

    def children(self, node_id: NodeId) -> List[GameTreeNode]:
        return [self._nodes[c] for c in self.get(node_id).children]

    def mutate(self, edit: Callable[[GameTreeDraft], Any]) -> "GameTree":
        """Applies ``edit`` to a draft and returns the resulting new tree. This tree is not modified."""
        draft = GameTreeDraft(self)
        edit(draft)
        return draft.commit()

    def nodes(self) -> Iterator[GameTreeNode]:
        """Depth-first, pre-order, children in variation order."""
        stack = [self._root_id]
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self, node_id: NodeId) -> Iterator[GameTreeNode]:
        """The node itself, then its parent, up to the root."""
        node: Optional[GameTreeNode] = self.get(node_id)
        seen = 0
        while node is not None:
            yield node
            seen += 1
            if seen > len(self._nodes):
                raise MalformedSgfError("Cycle detected in game tree")
            node = None if node.parent_id is None else self.get(node.parent_id)

    def is_ancestor(self, ancestor_id: NodeId, node_id: NodeId) -> bool:
        return any(n.id == ancestor_id for n in self.ancestors(node_id))

    def path(self, from_id: NodeId, to_id: NodeId) -> List[GameTreeNode]:
        """Nodes strictly below ``from_id`` down to ``to_id``, in root-to-leaf order."""
        collected = []
        for node in self.ancestors(to_id):
            if node.id == from_id:
                return collected[::-1]
            collected.append(node)
        raise NodeNotFoundError(from_id, context={"reason": f"not an ancestor of {to_id!r}"})

    def depth(self, node_id: NodeId) -> int:
        return sum(1 for _ in self.ancestors(node_id)) - 1

    def main_line(self, node_id: Optional[NodeId] = None) -> List[GameTreeNode]:
        """Follows first children from a node (default root) down to a leaf."""
        node = self.get(self._root_id if node_id is None else node_id)
        line = [node]
        while node.children and len(line) <= len(self._nodes):
            node = self._nodes[node.children[0]]
            line.append(node)
        return line

    def to_sgf_node(self) -> SGFNode:
        """Converts back to parser nodes, e.g. for serialization."""
        root = SGFNode(properties=self.root.data.as_dict())
        stack = [(root, self.root)]
        while stack:
            sgf_parent, node = stack.pop()
            for child_id in node.children:
                child = self._nodes[child_id]
                stack.append((SGFNode(parent=sgf_parent, properties=child.data.as_dict()), child))
        return root

    def to_sgf(self) -> str:
        return self.to_sgf_node().sgf()
