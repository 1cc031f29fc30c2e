# src/sasspipe/core/ignore.py
import sys
from pathlib import Path, PurePath
from typing import List, Optional

import pathspec

from sasspipe.config import DEFAULT_IGNORE_PATTERNS, IGNORE_FILENAME


def load_ignore_spec(root_dir: Path, extra_patterns: Optional[List[str]] = None) -> pathspec.PathSpec:
    """
    Builds the ignore rules for a source tree.
    Defaults come first, then .sassignore (if present), then any extra
    patterns such as the output directory.
    """
    lines = list(DEFAULT_IGNORE_PATTERNS)

    ignore_file = root_dir / IGNORE_FILENAME
    if ignore_file.exists():
        with open(ignore_file, "r", encoding="utf-8") as f:
            lines.extend(f.read().splitlines())

    if extra_patterns:
        lines.extend(extra_patterns)

    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", lines)
    except Exception as e:
        print(f"Error parsing ignore rules: {e}", file=sys.stderr)
        return pathspec.PathSpec.from_lines("gitwildmatch", DEFAULT_IGNORE_PATTERNS)


def is_path_ignored(rel_path: PurePath, spec: pathspec.PathSpec, is_directory: bool = False) -> bool:
    # Directory patterns like "dist/" only match with a trailing slash
    path_str = rel_path.as_posix()
    if is_directory:
        path_str += "/"
    return spec.match_file(path_str)
