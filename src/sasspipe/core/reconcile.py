# src/sasspipe/core/reconcile.py
import json
import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import click

from sasspipe.config import PLUGIN_NAME
from sasspipe.core.sourcemap import apply_source_map, keep_sources
from sasspipe.errors import PluginError
from sasspipe.models import CompileResult, File
from sasspipe.utils.paths import FILE_SCHEME, join, replace_extension, strip_file_scheme, strip_suffix

logger = logging.getLogger(__name__)

Callback = Callable[..., None]


def remap_sources(sources: List[str], map_file: str, sass_file_src: str, base: str) -> List[str]:
    """
    Rewrites map sources so they resolve from the emitted file's location.

    `file://` entries are absolute imports and become relative to `base`.
    Bare entries are relative to the source file's directory, except the entry
    for the source file itself, which is left as is.
    """
    sass_file_src_path = os.path.dirname(sass_file_src) or os.curdir

    if map_file in sources:
        self_index = sources.index(map_file)
    elif FILE_SCHEME + map_file in sources:
        self_index = sources.index(FILE_SCHEME + map_file)
    else:
        self_index = -1

    remapped = []
    for index, source in enumerate(sources):
        if source.startswith(FILE_SCHEME):
            remapped.append(os.path.relpath(strip_file_scheme(source), base or os.curdir))
        elif index == self_index or not source:
            # An empty entry has no location to join; it is dropped later
            remapped.append(source)
        else:
            remapped.append(join(sass_file_src_path, source))
    return remapped


def reconcile(file: File, compile_result: CompileResult) -> None:
    """
    Writes a successful compile back onto the file: CSS contents, `.css` path
    and a source map remapped to the emitted file's location.
    Raises on a malformed result; the caller reports that as a compile failure.
    """
    css = compile_result.css
    file.contents = css.encode("utf-8") if isinstance(css, str) else bytes(css)
    file.path = replace_extension(file.path, ".css")

    sass_map: Optional[Dict[str, Any]] = compile_result.source_map
    if isinstance(sass_map, str):
        sass_map = json.loads(sass_map)

    if sass_map:
        if not sass_map.get("file"):
            sass_map["file"] = file.path

        # The compiler names in-memory input "stdout" in some modes
        sass_map_file = "stdin" if sass_map["file"] == "stdout" else sass_map["file"]
        sass_file_src = file.relative
        base = strip_suffix(file.path, sass_file_src)

        sources = remap_sources(sass_map.get("sources", []), sass_map_file, sass_file_src, base)

        keep = [i for i, source in enumerate(sources) if source and source != "stdin"]
        sass_map["sources"] = [sources[i] for i in keep]
        if sass_map.get("sourcesContent"):
            contents = sass_map["sourcesContent"]
            sass_map["sourcesContent"] = [contents[i] if i < len(contents) else None for i in keep]
        if sass_map.get("mappings"):
            sass_map["mappings"] = keep_sources(sass_map["mappings"], keep)

        sass_map["file"] = replace_extension(sass_file_src, ".css")
        apply_source_map(file, sass_map)

    if file.stat:
        now = datetime.now()
        file.stat.atime = file.stat.mtime = file.stat.ctime = now


def file_push(file: File, compile_result: CompileResult, callback: Callback) -> None:
    """Reconciles a successful compile and hands the file downstream."""
    reconcile(file, compile_result)
    logger.debug("Compiled %s", file.relative)
    callback(None, file)


def handle_error(error: BaseException, file: File, callback: Callback) -> None:
    """Enriches a compiler error with path and message variants, then reports it."""
    error_file = getattr(error, "file", None)
    file_path = (file.path if error_file == "stdin" else error_file) or file.path
    relative_path = os.path.relpath(file_path, os.getcwd())

    original = getattr(error, "message", None) or str(error)
    message = f"{click.style(relative_path, underline=True)}\n{original}"

    error.message_formatted = message
    error.message_original = original
    error.message = click.unstyle(message)
    error.relative_path = relative_path

    logger.debug("Failed to compile %s", relative_path)
    callback(PluginError(PLUGIN_NAME, error))
