#!/usr/bin/env python3
"""
Command line interface for the matthiashihic compiler

Usage:
    matthiashihic hello.matthiashihic --api-key sk-... -o hello
    matthiashihic hello.matthiashihic --model gpt-4o -o hello
    matthiashihic hello.matthiashihic -o hello  # uses OPENAI_API_KEY at run time
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .compiler import Compiler
from .config import ConfigManager
from .exceptions import BuildError, ConfigurationError, GenerationError, ParsingError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

EPILOG = """\
Default model: gpt-4
API key priority: 1) OPENAI_API_KEY env var at runtime, 2) embedded key from --api-key
"""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="matthiashihic",
        description="Compile a .matthiashihic program into an executable that runs it on a chat model",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("source", help="Path to the .matthiashihic source file")
    parser.add_argument("--api-key", dest="api_key", help="API key to embed (obfuscated) in the executable")
    parser.add_argument("--model", help="Chat model name (default: gpt-4)")
    parser.add_argument("-o", "--output", help="Output path (default: source file name without extension)")
    parser.add_argument(
        "--emit-source",
        action="store_true",
        help="Write the generated Python program instead of building an executable",
    )
    parser.add_argument(
        "--no-bundle",
        dest="bundle",
        action="store_false",
        default=None,
        help="Do not vendor httpx into the executable; use the interpreter's packages",
    )
    parser.add_argument("--config", help="Path to a YAML or JSON configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def default_output_path(source: Path, emit_source: bool) -> Path:
    """Source file stem in the current directory, ``.py`` added for emitted source"""
    stem = source.stem or "a.out"
    return Path(f"{stem}.py") if emit_source else Path(stem)


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = ConfigManager.load(args.config)
    except ConfigurationError as e:
        print(e.format_error(), file=sys.stderr)
        return EXIT_FAILURE

    api_key = args.api_key if args.api_key is not None else config.compiler.api_key
    if api_key is None:
        logger.info(
            "No --api-key provided. Compiled program will require %s environment variable.",
            config.compiler.api_key_env,
        )

    source_path = Path(args.source)
    if not source_path.is_file():
        print(f"Source file does not exist: {source_path}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        source = source_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Failed to read {source_path}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    output = Path(args.output) if args.output else default_output_path(source_path, args.emit_source)
    compiler = Compiler(config)

    try:
        program = compiler.translate(source, api_key=api_key, model=args.model)
    except ParsingError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        logger.debug("%s", e.format_error())
        return EXIT_USAGE
    except GenerationError as e:
        print(e.format_error(), file=sys.stderr)
        return EXIT_FAILURE

    if args.emit_source:
        try:
            output.write_text(program.source, encoding="utf-8")
        except OSError as e:
            print(f"Failed to write {output}: {e}", file=sys.stderr)
            return EXIT_FAILURE
        print(f"Wrote program source: {output}")
        return EXIT_OK

    logger.info("Compiling %s -> %s ...", source_path, output)
    try:
        compiler.build(program, output, bundle=args.bundle)
    except BuildError as e:
        print(e.format_error(), file=sys.stderr)
        return EXIT_FAILURE

    print(f"Built executable: {output}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
