#!/usr/bin/env python
"""
Batch hint annotator for puzzle SGF files.

Adds ``LB[coord:o]`` / ``LB[coord:x]`` hint labels to every node with child moves,
marking which replies lead to a leaf whose comment says "correct".

Usage:
    python -m goalchemy.tools.annotate_sgf --input-dir ./sgf
    python -m goalchemy.tools.annotate_sgf --input-dir ./sgf --output-dir ./annotated --suffix ""
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from goalchemy.core.annotation import annotate_tree
from goalchemy.core.constants import PROGRAM_NAME, VERSION
from goalchemy.core.errors import MalformedSgfError
from goalchemy.core.game_tree import GameTree
from goalchemy.core.sgf_parser import SGF

_log = logging.getLogger("goalchemy.tools.annotate_sgf")

DEFAULT_SUFFIX = "_annotated"


def collect_sgf_files(input_dir: str, suffix: str = DEFAULT_SUFFIX) -> List[Tuple[str, str]]:
    """
    Collect SGF files below ``input_dir``, recursively.

    Files whose stem already ends in ``suffix`` are earlier outputs and are skipped.

    Returns:
        Sorted list of (absolute_path, relative_path) tuples
    """
    input_path = Path(input_dir).resolve()
    sgf_files = []
    for file_path in input_path.rglob("*"):
        if not file_path.is_file() or file_path.suffix.lower() != ".sgf":
            continue
        if suffix and file_path.stem.endswith(suffix):
            _log.debug("Skipping (already annotated): %s", file_path)
            continue
        sgf_files.append((str(file_path), str(file_path.relative_to(input_path))))
    sgf_files.sort(key=lambda x: x[1])
    return sgf_files


def output_path_for(rel_path: str, output_dir: str, suffix: str = DEFAULT_SUFFIX) -> str:
    rel = Path(rel_path)
    return str(Path(output_dir) / rel.parent / f"{rel.stem}{suffix}.sgf")


def annotate_file(sgf_path: str, output_path: str) -> bool:
    """
    Annotate one file and write the result.

    Returns:
        True on success. Parse and write failures are logged and return False.
    """
    try:
        tree = GameTree.from_sgf(SGF.read_file(sgf_path))
    except (OSError, MalformedSgfError) as e:
        _log.error("Can not read %s: %s", sgf_path, e)
        return False

    annotated = annotate_tree(tree)
    try:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(annotated.to_sgf())
    except (OSError, UnicodeEncodeError) as e:
        _log.error("Can not write %s: %s", output_path, e)
        return False
    _log.debug("Annotated %s (%d nodes)", sgf_path, len(annotated))
    return True


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Add correct/incorrect hint labels to puzzle SGF files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Annotate next to the originals, as <name>_annotated.sgf
    python -m goalchemy.tools.annotate_sgf --input-dir ./problems

    # Annotate into a separate tree, keeping file names
    python -m goalchemy.tools.annotate_sgf --input-dir ./problems --output-dir ./out --suffix ""
""",
    )
    parser.add_argument(
        "--input-dir",
        required=True,
        help="Directory searched recursively for SGF files",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save annotated files (default: same as input-dir)",
    )
    parser.add_argument(
        "--suffix",
        default=DEFAULT_SUFFIX,
        help=f"Appended to each output file name (default: {DEFAULT_SUFFIX})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )
    parser.add_argument("--version", action="version", version=f"{PROGRAM_NAME} {VERSION}")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not os.path.isdir(args.input_dir):
        _log.error("Input directory does not exist: %s", args.input_dir)
        return 1
    output_dir = args.output_dir or args.input_dir
    if output_dir == args.input_dir and not args.suffix:
        _log.error("Refusing to overwrite the input files: give --output-dir or a --suffix")
        return 1

    sgf_files = collect_sgf_files(args.input_dir, args.suffix)
    if not sgf_files:
        _log.info("No SGF files found in %s", args.input_dir)
        return 0
    _log.info("Found %d SGF file(s) to annotate", len(sgf_files))

    success_count = 0
    fail_count = 0
    for i, (sgf_path, rel_path) in enumerate(sgf_files):
        output_path = output_path_for(rel_path, output_dir, args.suffix)
        _log.info("[%d/%d] %s", i + 1, len(sgf_files), rel_path)
        if annotate_file(sgf_path, output_path):
            success_count += 1
        else:
            fail_count += 1

    _log.info("Annotation complete: %d succeeded, %d failed", success_count, fail_count)
    return 0 if fail_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
