# src/sasspipe/utils/compiler.py
import asyncio
import base64
import json
import re
from typing import Any, Dict, Optional, Tuple

import sass

from sasspipe.errors import CompileError
from sasspipe.models import CompileResult

EMBEDDED_MAP_RE = re.compile(
    r"\n?/\*# sourceMappingURL=data:application/json;(?:charset=[\w-]+;)?base64,([A-Za-z0-9+/=]+) \*/\s*$"
)
ERROR_LOCATION_RE = re.compile(r"on line (\d+):(\d+) of (.+?)\s*$", re.MULTILINE)


def extract_embedded_map(css: str) -> Tuple[str, Optional[Dict[str, Any]]]:
    """Splits an inline data-URI source map off the end of compiled CSS."""
    match = EMBEDDED_MAP_RE.search(css)
    if not match:
        return css, None
    source_map = json.loads(base64.b64decode(match.group(1)).decode("utf-8"))
    return css[: match.start()] + "\n", source_map


def parse_error(message: str) -> CompileError:
    match = ERROR_LOCATION_RE.search(message)
    if not match:
        return CompileError(message)
    line, column, file = match.groups()
    return CompileError(message, file=file, line=int(line), column=int(column))


class LibSassCompiler:
    """Compiler capability backed by libsass."""

    def __init__(self, output_style: str = "expanded"):
        self.output_style = output_style

    def compile(self, source: str, options: Dict[str, Any]) -> CompileResult:
        kwargs = {
            "string": source,
            "include_paths": list(options.get("load_paths") or []),
            "indented": options.get("syntax") == "indented",
            "output_style": options.get("style", self.output_style),
        }
        want_map = bool(options.get("source_map"))
        if want_map:
            kwargs["source_map_embed"] = True
            kwargs["source_map_contents"] = bool(options.get("source_map_include_sources"))

        try:
            css = sass.compile(**kwargs)
        except sass.CompileError as e:
            raise parse_error(str(e)) from e

        source_map = None
        if want_map:
            css, source_map = extract_embedded_map(css)
        return CompileResult(css=css, source_map=source_map)

    async def compile_async(self, source: str, options: Dict[str, Any]) -> CompileResult:
        return await asyncio.to_thread(self.compile, source, options)
