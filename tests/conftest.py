"""
Pytest configuration and shared fixtures for the puzzle core tests.

This module provides:
- Sample puzzle SGFs used across test modules
- Session, navigator and tree fixtures built from them
"""

import random

import pytest

from goalchemy.common.typed_config import PuzzleSettings
from goalchemy.core.game_tree import GameTree
from goalchemy.core.navigator import PuzzleNavigator
from goalchemy.core.session import PuzzleSession
from goalchemy.core.state import StateNotifier
from tests.fakes import FakeLoader, ManualScheduler


# ---------------------------------------------------------------------------
# Sample puzzles
# ---------------------------------------------------------------------------

# 9x9 puzzle with a setup node at the root.
# Black solves with ed, ee (auto-played), de. Black be is refuted by W ed.
PUZZLE_SGF = (
    "(;GM[1]FF[4]SZ[9]AB[cc][dc]AW[cd][dd]C[Black to play]"
    "(;B[ed];W[ee](;B[de]C[Correct!])(;B[fe];W[de]C[Wrong]))"
    "(;B[be];W[ed]C[incorrect, try again]))"
)

# Setup stones on a node below an empty root, as some collections store them.
NESTED_SETUP_SGF = "(;GM[1]SZ[9];AB[cc]AW[dd];B[ee];W[ff])"

# Move directly below the root, no setup stones at all.
NO_SETUP_SGF = "(;GM[1]SZ[9];B[ee];W[ff])"

SCENARIO_3_SGF = "(;SZ[19](;B[dd]C[incorrect, try again])(;B[pd]C[Correct!]))"


@pytest.fixture
def puzzle_tree() -> GameTree:
    return GameTree.from_sgf(PUZZLE_SGF)


@pytest.fixture
def navigator(puzzle_tree) -> PuzzleNavigator:
    nav = PuzzleNavigator()
    nav.load(puzzle_tree)
    return nav


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifier() -> StateNotifier:
    return StateNotifier()


@pytest.fixture
def loader() -> FakeLoader:
    return FakeLoader({("life_death", 0): PUZZLE_SGF, ("life_death", 1): NESTED_SETUP_SGF})


@pytest.fixture
def session(loader, scheduler, notifier) -> PuzzleSession:
    """A session with the default settings and a manual auto-play scheduler."""
    return PuzzleSession(
        loader=loader,
        settings=PuzzleSettings(),
        scheduler=scheduler,
        rng=random.Random(7),
        notifier=notifier,
    )


@pytest.fixture
def loaded_session(session) -> PuzzleSession:
    session.load_sgf(PUZZLE_SGF)
    return session
