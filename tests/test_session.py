"""Tests for the puzzle session controller: loading, moves, auto-play and transformations."""

import random

import pytest

from goalchemy.common.typed_config import PuzzleSettings
from goalchemy.core.constants import BLACK, WHITE
from goalchemy.core.coords import BoardRange
from goalchemy.core.errors import AssetLoadError
from goalchemy.core.session import PuzzleSession
from goalchemy.core.state import EventType
from goalchemy.core.transforms import (
    IDENTITY,
    BoardTransformation,
    Reflection,
    transform_sign,
    transform_vertex,
)
from tests.conftest import NESTED_SETUP_SGF, PUZZLE_SGF
from tests.fakes import BlockingLoader, FakeLoader, ManualScheduler, collect_events


class TestLoading:
    def test_initial_state(self, session):
        assert not session.is_loading
        assert session.current_node is None
        assert session.game_tree is None
        assert session.current_comment is None
        assert not session.place_stone((0, 0))

    def test_load_problem(self, session, notifier):
        events = collect_events(notifier, EventType.LOADING_CHANGED)
        assert session.load_problem("life_death", 0)
        assert not session.is_loading
        assert session.current_node == session.starting_node
        assert session.board_size == 9
        assert session.current_comment == "Black to play"
        assert [e.payload["loading"] for e in events] == [True, False]

    def test_load_failure_stays_loading(self, session, loader):
        with pytest.raises(AssetLoadError):
            session.load_problem("life_death", 99)
        assert session.is_loading
        assert loader.requests == [("life_death", 99)]
        assert not session.place_stone((0, 0))

    def test_reload_after_failure(self, session):
        with pytest.raises(AssetLoadError):
            session.load_problem("missing", 0)
        assert session.load_problem("life_death", 1)
        assert not session.is_loading
        assert session.starting_node.data.is_setup

    def test_no_loader(self):
        with pytest.raises(AssetLoadError):
            PuzzleSession(scheduler=ManualScheduler()).load_problem("life_death", 0)

    @pytest.mark.parametrize(
        "bad_sgf",
        [
            "",
            "not an sgf",
            "(;B[aa]W[bb])",
            "(;SZ[abc];B[aa])",
            "(;SZ[5]AB[jj])",
            "(;SZ[9]AB[cc];B[cc])",
            "(;SZ[9]AB[cc](;B[dd])(;B[ee];W[cc]))",
        ],
    )
    def test_malformed_sgf_gives_empty_board(self, session, bad_sgf):
        start = session.load_sgf(bad_sgf)
        assert not session.is_loading
        assert start == session.current_node
        assert start.is_root and start.is_leaf
        assert session.board.is_empty()
        assert session.board_size == 19

    def test_malformed_sgf_keeps_given_board_size(self, session):
        session.load_sgf("garbage", board_size=9)
        assert session.board_size == 9

    def test_board_size_from_settings_when_sgf_has_none(self, scheduler):
        session = PuzzleSession(settings=PuzzleSettings(board_size=13), scheduler=scheduler)
        session.load_sgf("(;AB[cc])")
        assert session.board_size == 13

    def test_range_and_color(self, session):
        session.load_sgf(PUZZLE_SGF, board_range=BoardRange(0, 0, 4, 4), player_color=WHITE)
        assert session.visible_range == BoardRange(0, 0, 4, 4)
        assert session.current_player == WHITE

    def test_oversized_range_is_clamped(self, session):
        session.load_sgf(PUZZLE_SGF, board_range=BoardRange(9, 0, 18, 9))
        assert session.visible_range == BoardRange(8, 0, 8, 8)

    def test_superseded_background_load_is_dropped(self, scheduler):
        loader = BlockingLoader({("life_death", 0): NESTED_SETUP_SGF})
        session = PuzzleSession(loader=loader, scheduler=scheduler)
        thread = session.load_problem_in_background("life_death", 0)
        assert loader.started.wait(timeout=5)
        session.load_sgf(PUZZLE_SGF)
        loader.release()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert session.current_comment == "Black to play"
        assert len(session.game_tree) == 8

    def test_background_load_reports_errors(self, scheduler):
        errors = []
        loader = FakeLoader({})
        session = PuzzleSession(loader=loader, scheduler=scheduler)
        session.load_problem_in_background("x", 3, on_error=errors.append).join(timeout=5)
        assert len(errors) == 1
        assert session.is_loading


class TestMoves:
    def test_matching_move_keeps_tree(self, loaded_session):
        """Playing a recorded move moves to that child without adding a node."""
        size_before = len(loaded_session.game_tree)
        assert loaded_session.place_stone((4, 3))
        assert loaded_session.current_node.move == (BLACK, "ed")
        assert len(loaded_session.game_tree) == size_before

    def test_new_move_adds_one_node(self, loaded_session):
        size_before = len(loaded_session.game_tree)
        assert loaded_session.place_stone((0, 0))
        assert loaded_session.current_node.data.as_dict() == {"B": ["aa"]}
        assert len(loaded_session.game_tree) == size_before + 1
        assert loaded_session.current_player == WHITE

    def test_illegal_move(self, loaded_session, scheduler):
        node = loaded_session.current_node
        assert not loaded_session.place_stone((2, 2))
        assert loaded_session.current_node == node
        assert scheduler.handles == []

    def test_is_valid_move(self, loaded_session):
        assert loaded_session.is_valid_move((0, 0))
        assert not loaded_session.is_valid_move((3, 3))

    def test_navigation(self, loaded_session):
        assert not loaded_session.backward()
        assert not loaded_session.can_navigate.backward
        assert loaded_session.last()
        assert loaded_session.current_comment == "Correct!"
        assert loaded_session.first()
        assert loaded_session.forward()
        assert loaded_session.can_navigate.backward


class TestAutoPlay:
    def test_reply_is_played_after_delay(self, loaded_session, scheduler):
        loaded_session.place_stone((4, 3))
        assert loaded_session.auto_play_pending
        assert [h.delay for h in scheduler.pending] == [0.5]
        assert scheduler.run_pending() == 1
        assert loaded_session.current_node.move == (WHITE, "ee")
        assert loaded_session.current_player == BLACK
        assert not loaded_session.auto_play_pending

    def test_no_reply_recorded(self, loaded_session, scheduler):
        loaded_session.place_stone((0, 0))
        assert scheduler.pending == []

    def test_disabled(self, scheduler):
        session = PuzzleSession(settings=PuzzleSettings(auto_play_opponent=False), scheduler=scheduler)
        session.load_sgf(PUZZLE_SGF)
        session.place_stone((4, 3))
        assert scheduler.pending == []

    def test_settings_applied_mid_session(self, loaded_session, scheduler):
        loaded_session.apply_settings(PuzzleSettings(auto_play_opponent=False))
        loaded_session.place_stone((4, 3))
        assert scheduler.pending == []
        assert loaded_session.current_node.move == (BLACK, "ed")

    def test_navigation_cancels_reply(self, loaded_session, scheduler):
        loaded_session.place_stone((4, 3))
        loaded_session.backward()
        assert scheduler.run_pending() == 0
        assert loaded_session.current_node == loaded_session.starting_node

    def test_stale_reply_is_ignored(self, loaded_session, scheduler):
        loaded_session.place_stone((4, 3))
        handle = scheduler.pending[0]
        loaded_session.navigator.first()  # moves without going through the session
        handle.callback()
        assert loaded_session.current_node == loaded_session.starting_node

    def test_late_cancelled_timer_keeps_newer_reply(self, loaded_session, scheduler):
        """A cancelled timer that still fires must not clear or run the reply scheduled after it."""
        loaded_session.place_stone((4, 3))
        old_handle = scheduler.pending[0]
        loaded_session.backward()
        loaded_session.place_stone((4, 3))
        new_handle = scheduler.pending[0]
        assert new_handle is not old_handle
        old_handle.callback()
        assert loaded_session.current_node.move == (BLACK, "ed")
        assert loaded_session.auto_play_pending
        loaded_session.cancel_auto_play()
        assert new_handle.cancelled
        assert not loaded_session.auto_play_pending

    def test_newer_reply_runs_after_late_timer(self, loaded_session, scheduler):
        loaded_session.place_stone((4, 3))
        old_handle = scheduler.pending[0]
        loaded_session.backward()
        loaded_session.place_stone((4, 3))
        old_handle.callback()
        assert scheduler.run_pending() == 1
        assert loaded_session.current_node.move == (WHITE, "ee")
        assert not loaded_session.auto_play_pending

    def test_new_load_and_close_cancel_reply(self, loaded_session, scheduler):
        loaded_session.place_stone((4, 3))
        loaded_session.load_sgf(PUZZLE_SGF)
        assert scheduler.pending == []
        loaded_session.place_stone((4, 3))
        loaded_session.close()
        assert scheduler.pending == []

    def test_random_policy_picks_a_recorded_reply(self, scheduler):
        sgf = "(;SZ[9]AB[ee](;B[dd](;W[cc])(;W[gg])(;W[cg])))"
        session = PuzzleSession(
            settings=PuzzleSettings(auto_play_policy="random"), scheduler=scheduler, rng=random.Random(1)
        )
        session.load_sgf(sgf)
        session.place_stone((3, 3))
        scheduler.run_pending()
        assert session.current_node.move in {(WHITE, "cc"), (WHITE, "gg"), (WHITE, "cg")}

    def test_first_policy_ignores_same_color_children(self, scheduler):
        sgf = "(;SZ[9]AB[ee](;B[dd](;B[cc])(;W[gg])))"
        session = PuzzleSession(scheduler=scheduler)
        session.load_sgf(sgf)
        session.place_stone((3, 3))
        scheduler.run_pending()
        assert session.current_node.move == (WHITE, "gg")


class TestTransformations:
    def test_controls(self, loaded_session, notifier):
        events = collect_events(notifier, EventType.TRANSFORMATION_CHANGED)
        assert loaded_session.rotate().rotation == 90
        assert loaded_session.reflect("vertical").reflection is Reflection.VERTICAL
        assert loaded_session.toggle_color_inversion().invert_colors
        assert len(events) == 3
        assert events[-1].payload["transformation"] == loaded_session.transformation

    def test_inversion_mid_session(self, loaded_session):
        loaded_session.toggle_color_inversion()
        assert loaded_session.current_player == WHITE
        assert loaded_session.player_color == WHITE
        assert loaded_session.current_comment == "White to play"
        assert loaded_session.board.get((2, 2)) == WHITE

    def test_move_under_transformation_is_stored_in_original_space(self, loaded_session):
        t = BoardTransformation(rotation=90, reflection=Reflection.HORIZONTAL, invert_colors=True)
        loaded_session.set_transformation(t)
        size_before = len(loaded_session.game_tree)
        assert loaded_session.place_stone(transform_vertex((4, 3), t, 9))
        assert loaded_session.current_node.move == (BLACK, "ed")
        assert len(loaded_session.game_tree) == size_before

    def test_randomized_board(self, scheduler):
        session = PuzzleSession(settings=PuzzleSettings(randomize_board=True), scheduler=scheduler, rng=random.Random(5))
        session.load_sgf(PUZZLE_SGF)
        t = session.transformation
        original = {(2, 2): BLACK, (3, 2): BLACK, (2, 3): WHITE, (3, 3): WHITE}
        assert session.board.stones() == {
            transform_vertex(v, t, 9): transform_sign(s, t) for v, s in original.items()
        }
        assert session.visible_range == BoardRange.full(9)

    def test_random_transformation_control(self, loaded_session):
        assert loaded_session.transformation == IDENTITY
        for _ in range(20):
            loaded_session.random_transformation()
        assert isinstance(loaded_session.transformation, BoardTransformation)

    def test_hints_follow_setting(self, scheduler):
        annotated = "(;SZ[9]AB[cc]LB[ed:o][be:x](;B[ed]C[Correct])(;B[be]))"
        hidden = PuzzleSession(scheduler=scheduler)
        hidden.load_sgf(annotated)
        assert hidden.hints() == []
        shown = PuzzleSession(settings=PuzzleSettings(show_hints=True), scheduler=scheduler)
        shown.load_sgf(annotated)
        assert [(h.vertex, h.correct) for h in shown.hints()] == [((4, 3), True), ((1, 4), False)]
