"""Tests for the offline hint annotation pass."""

import pytest

from goalchemy.core.annotation import (
    annotate_sgf,
    annotate_tree,
    hint_labels,
    is_correct_comment,
    leads_to_correct,
)
from goalchemy.core.constants import BLACK, WHITE
from goalchemy.core.game_tree import GameTree
from tests.conftest import PUZZLE_SGF, SCENARIO_3_SGF


class TestCorrectComment:
    @pytest.mark.parametrize("comment", ["Correct!", "correct", "That is CORRECT.", "Correct, well done"])
    def test_correct(self, comment):
        assert is_correct_comment(comment)

    @pytest.mark.parametrize("comment", [None, "", "incorrect, try again", "Incorrect", "wrong", "correction"])
    def test_not_correct(self, comment):
        assert not is_correct_comment(comment)


class TestLeadsToCorrect:
    def test_two_children(self):
        """A: incorrect comment, B: correct comment."""
        tree = GameTree.from_sgf(SCENARIO_3_SGF)
        a, b = tree.children(tree.root_id)
        assert not leads_to_correct(tree, a.id)
        assert leads_to_correct(tree, b.id)
        assert leads_to_correct(tree, tree.root_id)

    def test_only_ancestors_of_the_correct_leaf(self):
        tree = GameTree.from_sgf(
            "(;SZ[9](;B[aa](;W[ba](;B[ca]C[correct])(;B[da]))(;W[ea];B[fa]))(;B[ga];W[ha]))"
        )
        leaf = next(n for n in tree.nodes() if n.comment == "correct")
        ancestors = {n.id for n in tree.ancestors(leaf.id)}
        for node in tree.nodes():
            assert leads_to_correct(tree, node.id) == (node.id in ancestors)

    def test_cache_gives_same_results(self):
        tree = GameTree.from_sgf(PUZZLE_SGF)
        cache = {}
        with_cache = [leads_to_correct(tree, n.id, cache) for n in tree.nodes()]
        assert with_cache == [leads_to_correct(tree, n.id) for n in tree.nodes()]
        assert with_cache == [leads_to_correct(tree, n.id, cache) for n in tree.nodes()]

    def test_deep_tree(self):
        moves = "".join(f";{'B' if i % 2 == 0 else 'W'}[{'ab'[i % 2]}{'ab'[(i // 2) % 2]}]" for i in range(3000))
        tree = GameTree.from_sgf(f"(;SZ[9]{moves}C[correct])")
        assert leads_to_correct(tree, tree.root_id)


class TestAnnotateTree:
    def test_root_labels(self):
        tree = annotate_tree(GameTree.from_sgf(SCENARIO_3_SGF))
        assert tree.root.data["LB"] == ("dd:x", "pd:o")

    def test_serialized(self):
        assert annotate_sgf(SCENARIO_3_SGF) == (
            "(;SZ[19]LB[dd:x][pd:o](;B[dd]C[incorrect, try again])(;B[pd]C[Correct!]))"
        )

    def test_every_internal_node_is_labeled(self):
        tree = annotate_tree(GameTree.from_sgf(PUZZLE_SGF))
        labels = {n.move: list(n.data.get("LB", ())) for n in tree.nodes()}
        assert labels[None] == ["ed:o", "be:x"]
        assert labels[(BLACK, "ed")] == ["ee:o"]
        assert labels[(WHITE, "ee")] == ["de:o", "fe:x"]
        assert labels[(BLACK, "fe")] == ["de:x"]
        assert labels[(BLACK, "be")] == ["ed:x"]

    def test_leaves_are_untouched(self):
        tree = annotate_tree(GameTree.from_sgf(PUZZLE_SGF))
        assert all("LB" not in n.data for n in tree.nodes() if n.is_leaf)

    def test_original_tree_is_unchanged(self):
        original = GameTree.from_sgf(PUZZLE_SGF)
        annotate_tree(original)
        assert original.to_sgf() == PUZZLE_SGF

    def test_idempotent(self):
        once = annotate_sgf(PUZZLE_SGF)
        assert annotate_sgf(once) == once

    def test_children_without_moves_are_skipped(self):
        tree = GameTree.from_sgf("(;SZ[9](;C[just a note])(;B[aa]C[correct]))")
        assert hint_labels(tree, tree.root_id) == ["aa:o"]

    def test_other_labels_are_kept(self):
        result = annotate_tree(GameTree.from_sgf("(;SZ[9]LB[cc:A](;B[aa]C[correct]))"))
        assert result.root.data["LB"] == ("cc:A", "aa:o")

    def test_round_trips_other_properties(self):
        sgf = "(;GM[1]FF[4]SZ[9]PB[someone]AB[cc]C[note \\] escaped](;B[aa]TR[bb]C[correct]))"
        root = GameTree.from_sgf(annotate_sgf(sgf)).root
        assert root.data["PB"] == ("someone",)
        assert root.comment == "note ] escaped"
