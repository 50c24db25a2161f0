"""
Problem library: categories of SGF puzzles on disk.

The library root either holds an ``index.yaml`` describing every problem::

    joseki:
      - name: problem001
        file: joseki/001/problem001_annotated.sgf
        board_size: 19
        range: full            # a standard range name, or [start_x, start_y, end_x, end_y]
        color: B               # side the player takes

or plain ``<category>/<name>.sgf`` files, which are indexed in sorted order with defaults.
Without a ``board_size`` the board size comes from the file's root ``SZ`` when it is loaded.
Problem ids are positions within their category.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from goalchemy.core.constants import BLACK, DEFAULT_BOARD_SIZE, LIBRARY_INDEX_FILE, MAX_BOARD_SIZE, MIN_BOARD_SIZE
from goalchemy.core.coords import BoardRange, player_to_sign, standard_range
from goalchemy.core.errors import AssetLoadError
from goalchemy.core.sgf_parser import SGF

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProblemEntry:
    category: str
    problem_id: int
    name: str
    path: Path
    board_size: Optional[int] = None  # None: taken from the SGF root SZ
    board_range: Optional[BoardRange] = None
    color: int = BLACK

    @property
    def visible_range(self) -> BoardRange:
        return self.board_range or BoardRange.full(self.board_size or DEFAULT_BOARD_SIZE)


def _parse_range(value: Any, board_size: int) -> Optional[BoardRange]:
    if value is None:
        return None
    if isinstance(value, str):
        return standard_range(value, board_size)
    if isinstance(value, Mapping):
        value = [value.get(k) for k in ("start_x", "start_y", "end_x", "end_y")]
    if isinstance(value, (list, tuple)) and len(value) == 4 and all(isinstance(v, int) for v in value):
        board_range = BoardRange(*value)
        if board_range.fits(board_size):
            return board_range
    raise ValueError(f"Invalid board range {value!r} for a {board_size}x{board_size} board")


def _parse_color(value: Any) -> int:
    if value is None:
        return BLACK
    if isinstance(value, int) and not isinstance(value, bool) and value in (1, -1):
        return value
    return player_to_sign(str(value))


class ProblemLibrary:
    """Index of problems by category; implements ``load_sgf_text(category, problem_id)``."""

    def __init__(self, root: str | Path, entries: Dict[str, List[ProblemEntry]]):
        self.root = Path(root)
        self._entries = entries

    @classmethod
    def from_directory(cls, root: str | Path) -> "ProblemLibrary":
        root = Path(root)
        if not root.is_dir():
            raise AssetLoadError(f"Problem library {root} does not exist", context={"root": str(root)})
        index_path = root / LIBRARY_INDEX_FILE
        if index_path.exists():
            return cls(root, cls._read_index(root, index_path))
        return cls(root, cls._scan(root))

    @staticmethod
    def _read_index(root: Path, index_path: Path) -> Dict[str, List[ProblemEntry]]:
        try:
            with open(index_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise AssetLoadError(f"Can not read problem index {index_path}: {e}") from e
        if not isinstance(data, dict):
            raise AssetLoadError(f"Problem index {index_path} must map categories to problem lists")

        entries: Dict[str, List[ProblemEntry]] = {}
        for category, problems in data.items():
            category_entries = []
            for problem_id, item in enumerate(problems or []):
                try:
                    board_size = item.get("board_size")
                    if board_size is not None:
                        board_size = int(board_size)
                        if not MIN_BOARD_SIZE <= board_size <= MAX_BOARD_SIZE:
                            raise ValueError(f"board size {board_size} out of range")
                    file = item["file"]
                    category_entries.append(
                        ProblemEntry(
                            category=str(category),
                            problem_id=problem_id,
                            name=str(item.get("name", Path(file).stem)),
                            path=root / file,
                            board_size=board_size,
                            board_range=_parse_range(item.get("range"), board_size or DEFAULT_BOARD_SIZE),
                            color=_parse_color(item.get("color")),
                        )
                    )
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    raise AssetLoadError(
                        f"Invalid entry {problem_id} in category {category!r}: {e}",
                        context={"category": category, "problem_id": problem_id},
                    ) from e
            entries[str(category)] = category_entries
        return entries

    @staticmethod
    def _scan(root: Path) -> Dict[str, List[ProblemEntry]]:
        entries: Dict[str, List[ProblemEntry]] = {}
        for category_dir in sorted(p for p in root.iterdir() if p.is_dir()):
            files = sorted(category_dir.rglob("*.[sS][gG][fF]"))
            entries[category_dir.name] = [
                ProblemEntry(category=category_dir.name, problem_id=i, name=path.stem, path=path)
                for i, path in enumerate(files)
            ]
        _log.debug("Scanned %d categories under %s", len(entries), root)
        return entries

    @property
    def categories(self) -> List[str]:
        return list(self._entries)

    def problems(self, category: str) -> List[ProblemEntry]:
        if category not in self._entries:
            raise AssetLoadError(f"Unknown category {category!r}", context={"category": category})
        return list(self._entries[category])

    def get(self, category: str, problem_id: int) -> ProblemEntry:
        problems = self.problems(category)
        if not 0 <= problem_id < len(problems):
            raise AssetLoadError(
                f"File not found: {category}/{problem_id}", context={"category": category, "problem_id": problem_id}
            )
        return problems[problem_id]

    def load_sgf_text(self, category: str, problem_id: int) -> str:
        entry = self.get(category, problem_id)
        try:
            return SGF.read_file(str(entry.path))
        except OSError as e:
            raise AssetLoadError(f"Can not read {entry.path}: {e}", context={"path": str(entry.path)}) from e
