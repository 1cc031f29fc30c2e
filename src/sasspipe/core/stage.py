# src/sasspipe/core/stage.py
import asyncio
import copy
import logging
import os
from typing import Any, Dict, Optional

from sasspipe.config import INDENTED_EXTENSION, PLUGIN_NAME
from sasspipe.core.reconcile import Callback, handle_error, reconcile
from sasspipe.errors import PluginError
from sasspipe.models import File
from sasspipe.utils.paths import replace_extension

logger = logging.getLogger(__name__)


class SassStage:
    """
    Per-file compile step.

    `transform` follows the host stream contract: it is called once per file
    and calls `callback(error, file)` exactly once. In async mode the compile
    runs as a task on the running event loop, and that task is returned.
    """

    def __init__(self, compiler, options: Optional[Dict[str, Any]] = None, sync: bool = False):
        self.compiler = compiler
        self.options = options or {}
        self.sync = sync

    def build_options(self, file: File) -> Dict[str, Any]:
        opts = copy.deepcopy(self.options)

        if file.extname == INDENTED_EXTENSION:
            opts["syntax"] = "indented"

        load_paths = opts.get("load_paths")
        if not load_paths:
            load_paths = []
        elif isinstance(load_paths, str):
            load_paths = [load_paths]
        else:
            load_paths = list(load_paths)
        load_paths.insert(0, os.path.dirname(file.path))
        opts["load_paths"] = load_paths

        if file.source_map is not None:
            opts["source_map"] = True
            opts["source_map_include_sources"] = True

        return opts

    def transform(self, file: File, encoding: str, callback: Callback) -> Optional[asyncio.Task]:
        if file.is_null():
            callback(None, file)
            return None

        if file.is_stream():
            callback(PluginError(PLUGIN_NAME, "Streaming not supported"))
            return None

        if file.basename.startswith("_"):
            logger.debug("Skipping partial %s", file.relative)
            callback()
            return None

        if not file.contents:
            file.path = replace_extension(file.path, ".css")
            callback(None, file)
            return None

        opts = self.build_options(file)
        # Undecodable bytes become U+FFFD rather than escaping the stream
        source = file.contents.decode("utf-8", errors="replace")

        if self.sync:
            self._compile_sync(file, source, opts, callback)
            return None
        return asyncio.get_running_loop().create_task(
            self._compile_async(file, source, opts, callback)
        )

    def _compile_sync(self, file: File, source: str, opts: Dict[str, Any], callback: Callback) -> None:
        logger.debug("Compiling %s", file.relative)
        try:
            reconcile(file, self.compiler.compile(source, opts))
        except Exception as error:
            handle_error(error, file, callback)
            return
        callback(None, file)

    async def _compile_async(self, file: File, source: str, opts: Dict[str, Any], callback: Callback) -> None:
        logger.debug("Compiling %s (async)", file.relative)
        try:
            reconcile(file, await self.compiler.compile_async(source, opts))
        except Exception as error:
            handle_error(error, file, callback)
            return
        callback(None, file)
