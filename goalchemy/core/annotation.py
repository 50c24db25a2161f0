"""Offline puzzle annotation: hint labels for every move in a solution tree.

A leaf whose comment contains the word "correct" (any case, but not as part of
"incorrect") ends a solution line. For each node the pass appends one ``LB`` value
per child move, ``"<coord>:o"`` if the child's subtree reaches such a comment and
``"<coord>:x"`` otherwise. The hint display reads these labels back on device.
"""

import logging
import re
from typing import Dict, List, Optional

from goalchemy.core.constants import HINT_CORRECT, HINT_INCORRECT, HINT_LABEL_PROPERTY
from goalchemy.core.game_tree import GameTree, GameTreeDraft, NodeId

_log = logging.getLogger(__name__)

CORRECT_PATTERN = re.compile(r"\bcorrect\b", re.IGNORECASE)


def is_correct_comment(comment: Optional[str]) -> bool:
    return bool(comment) and CORRECT_PATTERN.search(comment) is not None


def leads_to_correct(tree: GameTree, node_id: NodeId, cache: Optional[Dict[NodeId, bool]] = None) -> bool:
    """True if the node's own comment is correct, or any child's subtree leads to a correct comment.

    ``cache`` memoizes results across calls on the same tree value.
    """
    if cache is not None and node_id in cache:
        return cache[node_id]
    # post-order over the subtree, so deep trees do not hit the recursion limit
    results: Dict[NodeId, bool] = {} if cache is None else cache
    stack = [(node_id, False)]
    while stack:
        current_id, expanded = stack.pop()
        if current_id in results:
            continue
        node = tree.get(current_id)
        if is_correct_comment(node.comment):
            results[current_id] = True
        elif expanded:
            results[current_id] = any(results[c] for c in node.children)
        else:
            stack.append((current_id, True))
            stack.extend((c, False) for c in node.children if c not in results)
    return results[node_id]


def hint_labels(tree: GameTree, node_id: NodeId, cache: Optional[Dict[NodeId, bool]] = None) -> List[str]:
    """``coord:o`` / ``coord:x`` for each child move of a node, in child order. Children without a move are skipped."""
    cache = {} if cache is None else cache
    labels = []
    for child in tree.children(node_id):
        move = child.data.move
        if move is None:
            continue
        mark = HINT_CORRECT if leads_to_correct(tree, child.id, cache) else HINT_INCORRECT
        labels.append(f"{move[1]}:{mark}")
    return labels


def annotate_tree(tree: GameTree) -> GameTree:
    """Returns a new tree with hint labels on every node that has child moves.

    Nodes are visited once, depth first. A coordinate that already carries a hint
    label on a node is left alone, so annotating twice changes nothing.
    """
    cache: Dict[NodeId, bool] = {}

    def edit(draft: GameTreeDraft) -> None:
        labeled = 0
        for node in tree.nodes():
            existing = {coord for coord, _ in node.data.hint_labels}
            for label in hint_labels(tree, node.id, cache):
                if label.split(":")[0] in existing:
                    continue
                draft.add_to_property(node.id, HINT_LABEL_PROPERTY, label)
                labeled += 1
        _log.debug("Added %d hint labels to %d nodes", labeled, len(tree))

    return tree.mutate(edit)


def annotate_sgf(sgf_text: str) -> str:
    """Parses, annotates and serializes an SGF string."""
    return annotate_tree(GameTree.from_sgf(sgf_text)).to_sgf()
