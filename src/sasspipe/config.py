# src/sasspipe/config.py

PLUGIN_NAME = "sasspipe"

MISSING_COMPILER_MESSAGE = """
sasspipe has no default Sass compiler; please pass one yourself.
Any object with a compile(source, options) method is accepted.
For example:

  from sasspipe.plugin import sass_plugin
  from sasspipe.utils.compiler import LibSassCompiler

  sass = sass_plugin(LibSassCompiler())
"""

SOURCE_EXTENSIONS = {".scss", ".sass", ".css"}

INDENTED_EXTENSION = ".sass"

IGNORE_FILENAME = ".sassignore"

DEFAULT_OUTPUT_DIR = "dist"

DEFAULT_IGNORE_PATTERNS = [
    "# Default ignore patterns",
    ".git/",
    "node_modules/",
    "venv/",
    ".venv/",
    "__pycache__/",
    "dist/",
    "build/",
    ".vscode/",
    ".idea/",
    ".DS_Store",
    ".sass-cache/",
]
