# src/sasspipe/utils/paths.py
import os

FILE_SCHEME = "file://"


def replace_extension(path: str, ext: str) -> str:
    """Swaps the extension of the last path component; adds one if missing."""
    if not path:
        return path
    root, _ = os.path.splitext(path)
    return root + ext


def join(*parts: str) -> str:
    """Joins and normalizes, so "." segments vanish ("./a.scss" -> "a.scss")."""
    return os.path.normpath(os.path.join(*parts))


def strip_suffix(path: str, suffix: str) -> str:
    """Removes a literal trailing suffix; returns the path untouched otherwise."""
    if suffix and path.endswith(suffix):
        return path[: -len(suffix)]
    return path


def strip_file_scheme(source: str) -> str:
    return source[len(FILE_SCHEME):] if source.startswith(FILE_SCHEME) else source
