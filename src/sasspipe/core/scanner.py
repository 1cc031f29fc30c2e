# src/sasspipe/core/scanner.py
import os
import sys
from pathlib import Path
from typing import Iterator, Set

import pathspec

from sasspipe.config import SOURCE_EXTENSIONS
from sasspipe.core.ignore import is_path_ignored
from sasspipe.models import File


class SourceScanner:
    def __init__(self, root_dir: Path, ignore_spec: pathspec.PathSpec, extensions: Set[str] = SOURCE_EXTENSIONS):
        self.root_dir = root_dir
        self.ignore_spec = ignore_spec
        self.extensions = extensions

    def scan(self) -> Iterator[File]:
        """
        Walks the source tree, pruning ignored directories,
        and yields a File for every stylesheet found.
        Partials are yielded too; dropping them is the compile stage's job.
        """
        for root, dirs, files in os.walk(self.root_dir):
            root_path = Path(root)

            # Prune in place so os.walk never descends into ignored directories
            for d in list(dirs):
                dir_rel_path = (root_path / d).relative_to(self.root_dir)
                if is_path_ignored(dir_rel_path, self.ignore_spec, is_directory=True):
                    dirs.remove(d)
            dirs.sort()

            for f in sorted(files):
                file_abs_path = root_path / f
                rel_path = file_abs_path.relative_to(self.root_dir)

                if file_abs_path.suffix not in self.extensions:
                    continue
                if is_path_ignored(rel_path, self.ignore_spec):
                    continue

                try:
                    yield File.from_path(file_abs_path, base=self.root_dir)
                except OSError as e:
                    print(f"  > [Warning] Skipping {rel_path.as_posix()} (read error: {e})", file=sys.stderr)
