# src/sasspipe/plugin.py
import sys
from typing import Any, Dict, Optional

from sasspipe.config import MISSING_COMPILER_MESSAGE, PLUGIN_NAME
from sasspipe.core.stage import SassStage
from sasspipe.core.stream import Transform
from sasspipe.errors import PluginError


class SassPlugin:
    """Entry point bound to one compiler; builds a fresh stream per call."""

    def __init__(self, compiler):
        self.compiler = compiler

    def __call__(self, options: Optional[Dict[str, Any]] = None, sync: bool = False) -> Transform:
        stage = SassStage(self.compiler, options, sync=sync)
        return Transform(stage.transform)

    def sync(self, options: Optional[Dict[str, Any]] = None) -> Transform:
        return self(options, sync=True)

    @staticmethod
    def log_error(error: BaseException, stream: Optional[Transform] = None) -> None:
        """Prints the error nicely, then ends the stream so the run can wind down."""
        message = str(PluginError("sass", error))
        sys.stderr.write(f"{message}\n")
        if stream is not None:
            stream.end()


def sass_plugin(compiler) -> SassPlugin:
    """Binds a compiler. Without a usable one there is nothing to run, so exit."""
    if compiler is None or not callable(getattr(compiler, "compile", None)):
        message = str(PluginError(PLUGIN_NAME, MISSING_COMPILER_MESSAGE, show_properties=False))
        sys.stderr.write(f"{message}\n")
        sys.exit(1)
    return SassPlugin(compiler)
