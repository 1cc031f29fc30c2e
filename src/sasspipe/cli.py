# src/sasspipe/cli.py
import sys
import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import List, Tuple

# Module imports
from sasspipe.config import DEFAULT_OUTPUT_DIR
from sasspipe.core.ignore import load_ignore_spec
from sasspipe.core.scanner import SourceScanner
from sasspipe.core.sourcemap import init_source_map
from sasspipe.models import File
from sasspipe.plugin import SassPlugin, sass_plugin

def create_arg_parser():
    parser = argparse.ArgumentParser(
        description="Compile a tree of Sass/SCSS stylesheets into CSS, one file at a time."
    )
    parser.add_argument("root_dir", type=str, nargs="?", default=os.getcwd(), help="Source root directory")
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help=f"Output directory (default: {{root_dir}}/{DEFAULT_OUTPUT_DIR})"
    )
    parser.add_argument(
        "-I", "--load-path",
        dest="load_paths",
        action="append",
        default=[],
        help="Extra directory searched for imports (repeatable)"
    )
    parser.add_argument("--style", type=str, default="expanded", choices=["nested", "expanded", "compact", "compressed"])
    parser.add_argument("--source-map", action="store_true", help="Write a .css.map next to each stylesheet")
    parser.add_argument("--sync", action="store_true", help="Compile files one at a time, blocking")
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Report every failure instead of stopping at the first (sync mode only; async mode always compiles every file)"
    )
    return parser

def load_compiler():
    """Imported on demand so the rest of the CLI works without libsass installed."""
    from sasspipe.utils.compiler import LibSassCompiler
    return LibSassCompiler()

async def run_pipeline(
    plugin: SassPlugin,
    files: List[File],
    options: dict,
    sync: bool = False,
    source_maps: bool = False,
    keep_going: bool = False,
) -> Tuple[List[File], List[BaseException]]:
    """Streams files through the plugin and collects what comes out."""
    stream = plugin(options, sync=sync)
    failures: List[BaseException] = []

    def report(error, stream):
        failures.append(error)
        # Ending the stream stops further writes, like an unplumbed gulp task.
        # Async failures arrive after every file is written, so nothing is left to stop.
        plugin.log_error(error, None if keep_going else stream)

    stream.on_error(report)

    for file in files:
        if source_maps:
            init_source_map(file)
        if not stream.write(file):
            break

    outputs = await stream.finish()
    return outputs, failures

def write_outputs(outputs: List[File], out_dir: Path, source_maps: bool = False) -> List[Tuple[Path, int]]:
    written = []
    for file in outputs:
        if file.contents is None:
            continue
        dest = out_dir / file.relative
        dest.parent.mkdir(parents=True, exist_ok=True)

        contents = file.contents
        if source_maps and file.source_map:
            map_name = f"{dest.name}.map"
            (dest.parent / map_name).write_text(json.dumps(file.source_map), encoding="utf-8")
            contents += f"\n/*# sourceMappingURL={map_name} */\n".encode("utf-8")

        dest.write_bytes(contents)
        written.append((dest, len(contents)))
    return written

def main():
    try:
        # 1. Setup
        parser = create_arg_parser()
        args = parser.parse_args()

        root_dir = Path(args.root_dir).resolve()
        if not root_dir.is_dir():
            print(f"Error: Invalid directory '{root_dir}'", file=sys.stderr)
            sys.exit(1)

        out_dir = Path(args.output).resolve() if args.output else root_dir / DEFAULT_OUTPUT_DIR

        print(f"--- sasspipe ---")
        print(f"Source: {root_dir}")
        print(f"Output: {out_dir}")
        print(f"Mode:   {'sync' if args.sync else 'async'}{' + source maps' if args.source_map else ''}")

        # 2. Ignore Rules (never read back our own output)
        extra_patterns = []
        try:
            extra_patterns.append(out_dir.relative_to(root_dir).as_posix() + "/")
        except ValueError:
            pass
        ignore_spec = load_ignore_spec(root_dir, extra_patterns=extra_patterns)

        # 3. Scanning
        files = list(SourceScanner(root_dir, ignore_spec).scan())
        if not files:
            print("No stylesheets found.")
            return

        # 4. Compile
        plugin = sass_plugin(load_compiler())
        options = {"load_paths": args.load_paths, "style": args.style}
        outputs, failures = asyncio.run(
            run_pipeline(plugin, files, options, sync=args.sync, source_maps=args.source_map, keep_going=args.keep_going)
        )

        # 5. Output
        try:
            written = write_outputs(outputs, out_dir, source_maps=args.source_map)
        except IOError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            sys.exit(1)

        print(f"\n{'Bytes':<10} | {'File Path'}")
        print("-" * 60)
        for dest, size in sorted(written, key=lambda x: x[0]):
            print(f"{size:<10} | {dest.relative_to(out_dir).as_posix()}")
        print("-" * 60)
        print(f"Sources: {len(files)} | Written: {len(written)} | Failed: {len(failures)}")

        if failures:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(1)

    except Exception as e:
        print(f"An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == "__main__":
    main()
