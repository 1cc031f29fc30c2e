# src/sasspipe/models.py
import io
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Union


@dataclass
class FileStat:
    """Filesystem timestamps carried alongside a file unit."""
    atime: datetime
    mtime: datetime
    ctime: datetime

    @classmethod
    def from_stat_result(cls, st: os.stat_result) -> "FileStat":
        return cls(
            atime=datetime.fromtimestamp(st.st_atime),
            mtime=datetime.fromtimestamp(st.st_mtime),
            ctime=datetime.fromtimestamp(st.st_ctime),
        )


@dataclass
class File:
    """
    One stylesheet document moving through a pipeline.

    `contents` decides the mode: None (null), bytes (buffer) or a readable
    binary stream. `source_map` is set upstream to request a map.
    """
    path: str
    contents: Union[None, bytes, BinaryIO] = None
    cwd: str = field(default_factory=os.getcwd)
    base: Optional[str] = None
    stat: Optional[FileStat] = None
    source_map: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.base is None:
            self.base = self.cwd

    @classmethod
    def from_path(cls, path: Path, base: Optional[Path] = None) -> "File":
        path = Path(path).resolve()
        return cls(
            path=str(path),
            contents=path.read_bytes(),
            base=str(base.resolve()) if base is not None else None,
            stat=FileStat.from_stat_result(path.stat()),
        )

    @property
    def relative(self) -> str:
        return os.path.relpath(self.path, self.base)

    @property
    def basename(self) -> str:
        return os.path.basename(self.path)

    @property
    def extname(self) -> str:
        return os.path.splitext(self.path)[1]

    def is_null(self) -> bool:
        return self.contents is None

    def is_buffer(self) -> bool:
        return isinstance(self.contents, (bytes, bytearray))

    def is_stream(self) -> bool:
        return isinstance(self.contents, io.IOBase)


@dataclass
class CompileResult:
    """What a compiler hands back: CSS text plus an optional v3 source map."""
    css: Union[str, bytes]
    source_map: Union[None, str, Dict[str, Any]] = None
