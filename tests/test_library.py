"""Tests for the on-disk problem library."""

import pytest

from goalchemy.core.constants import BLACK, WHITE
from goalchemy.core.coords import BoardRange
from goalchemy.core.errors import AssetLoadError
from goalchemy.core.library import ProblemLibrary
from goalchemy.core.session import PuzzleSession
from tests.conftest import PUZZLE_SGF
from tests.fakes import ManualScheduler


@pytest.fixture
def scanned_root(tmp_path):
    (tmp_path / "life_death").mkdir()
    (tmp_path / "life_death" / "b.sgf").write_text(PUZZLE_SGF, encoding="utf-8")
    (tmp_path / "life_death" / "a.sgf").write_text("(;SZ[9]AB[aa])", encoding="utf-8")
    (tmp_path / "joseki" / "001").mkdir(parents=True)
    (tmp_path / "joseki" / "001" / "p1.SGF").write_text("(;SZ[19]AB[pd])", encoding="utf-8")
    (tmp_path / "joseki" / "notes.txt").write_text("not a problem", encoding="utf-8")
    return tmp_path


@pytest.fixture
def indexed_root(scanned_root):
    (scanned_root / "index.yaml").write_text(
        """
life_death:
  - name: easy
    file: life_death/b.sgf
    board_size: 9
    range: [0, 0, 5, 5]
    color: W
joseki:
  - file: joseki/001/p1.SGF
    range: top_right
  - file: joseki/missing.sgf
    range:
      start_x: 0
      start_y: 0
      end_x: 9
      end_y: 9
""",
        encoding="utf-8",
    )
    return scanned_root


class TestScan:
    def test_categories_and_order(self, scanned_root):
        library = ProblemLibrary.from_directory(scanned_root)
        assert library.categories == ["joseki", "life_death"]
        assert [p.name for p in library.problems("life_death")] == ["a", "b"]
        assert [p.name for p in library.problems("joseki")] == ["p1"]

    def test_defaults(self, scanned_root):
        entry = ProblemLibrary.from_directory(scanned_root).get("life_death", 1)
        assert entry.board_size is None
        assert entry.color == BLACK
        assert entry.visible_range == BoardRange.full(19)

    def test_load_text(self, scanned_root):
        assert ProblemLibrary.from_directory(scanned_root).load_sgf_text("life_death", 1) == PUZZLE_SGF

    def test_missing_root(self, tmp_path):
        with pytest.raises(AssetLoadError):
            ProblemLibrary.from_directory(tmp_path / "nope")

    @pytest.mark.parametrize("category, problem_id", [("life_death", 2), ("life_death", -1), ("tesuji", 0)])
    def test_unknown_problem(self, scanned_root, category, problem_id):
        with pytest.raises(AssetLoadError):
            ProblemLibrary.from_directory(scanned_root).get(category, problem_id)


class TestIndex:
    def test_entries(self, indexed_root):
        library = ProblemLibrary.from_directory(indexed_root)
        assert library.categories == ["life_death", "joseki"]
        easy = library.get("life_death", 0)
        assert easy.name == "easy"
        assert easy.board_size == 9
        assert easy.board_range == BoardRange(0, 0, 5, 5)
        assert easy.color == WHITE
        joseki = library.get("joseki", 0)
        assert joseki.name == "p1"
        assert joseki.board_size is None
        assert joseki.board_range == BoardRange(9, 0, 18, 9)
        assert library.get("joseki", 1).board_range == BoardRange(0, 0, 9, 9)

    def test_missing_file(self, indexed_root):
        library = ProblemLibrary.from_directory(indexed_root)
        with pytest.raises(AssetLoadError):
            library.load_sgf_text("joseki", 1)

    @pytest.mark.parametrize(
        "index",
        [
            "[not, a, mapping]",
            "cat:\n  - name: no file\n",
            "cat:\n  - file: a.sgf\n    range: nowhere\n",
            "cat:\n  - file: a.sgf\n    board_size: 9\n    range: [0, 0, 10, 10]\n",
            "cat:\n  - file: a.sgf\n    board_size: 99\n",
            "cat:\n  - file: a.sgf\n    color: purple\n",
            "cat: [unclosed",
        ],
    )
    def test_invalid_index(self, tmp_path, index):
        (tmp_path / "index.yaml").write_text(index, encoding="utf-8")
        with pytest.raises(AssetLoadError):
            ProblemLibrary.from_directory(tmp_path)

    def test_session_uses_entry_metadata(self, indexed_root):
        session = PuzzleSession(loader=ProblemLibrary.from_directory(indexed_root), scheduler=ManualScheduler())
        assert session.load_problem("life_death", 0)
        assert session.problem.name == "easy"
        assert session.board_size == 9
        assert session.visible_range == BoardRange(0, 0, 5, 5)
        assert session.current_player == WHITE

    def test_session_takes_size_from_scanned_file(self, scanned_root):
        session = PuzzleSession(loader=ProblemLibrary.from_directory(scanned_root), scheduler=ManualScheduler())
        assert session.load_problem("life_death", 0)
        assert session.board_size == 9
        assert session.visible_range == BoardRange.full(9)
        assert session.board.get((0, 0)) == BLACK

    def test_index_without_size_uses_file_size(self, tmp_path):
        (tmp_path / "small.sgf").write_text("(;SZ[9]AB[cc])", encoding="utf-8")
        (tmp_path / "index.yaml").write_text("cat:\n  - file: small.sgf\n", encoding="utf-8")
        session = PuzzleSession(loader=ProblemLibrary.from_directory(tmp_path), scheduler=ManualScheduler())
        assert session.load_problem("cat", 0)
        assert session.board_size == 9
        assert session.visible_range == BoardRange.full(9)
