"""
matthiashihic

A compiler for .matthiashihic programs: a header, some quoted pseudocode
statements and a terminator. The compiler validates the source and emits a
standalone program that asks a chat model to "execute" the pseudocode and
streams the answer to stdout.

Main Components:
- SourceParser: Validates the source and extracts statements and placeholders
- ProgramGenerator: Emits the text of the standalone program
- build_executable: Packs generated program text into an executable
- Compiler: Orchestrates the above

Usage:
    from matthiashihic import Compiler

    program = Compiler().translate('hihi!\\n"say hello"\\neat that java!\\n')
    print(program.source)
"""

__version__ = "0.1.0"

# ruff: noqa: E402
from .build import BuildManifest, build_executable
from .codegen import ProgramGenerator, escape_literal, generate_program
from .compiler import Compiler
from .config import Config, ConfigManager
from .exceptions import (
    BuildError,
    ConfigurationError,
    ExpectedStringStatementError,
    InvalidArgumentIndexError,
    InvalidEmbeddedCredentialError,
    MissingHeaderError,
    MissingTerminatorError,
    ParsingError,
    TrailingCharactersError,
    TranslatorError,
    UnterminatedStringError,
)
from .models import GeneratedProgram, ObfuscatedCredential, ParseResult, Statement
from .obfuscation import obfuscate, reveal
from .parser import SourceParser, parse_source
from .placeholders import resolve_placeholders

__all__ = [
    "Compiler",
    "SourceParser",
    "parse_source",
    "resolve_placeholders",
    "ProgramGenerator",
    "generate_program",
    "escape_literal",
    "obfuscate",
    "reveal",
    "BuildManifest",
    "build_executable",
    "Config",
    "ConfigManager",
    "Statement",
    "ParseResult",
    "ObfuscatedCredential",
    "GeneratedProgram",
    "TranslatorError",
    "ParsingError",
    "MissingHeaderError",
    "ExpectedStringStatementError",
    "UnterminatedStringError",
    "TrailingCharactersError",
    "MissingTerminatorError",
    "InvalidArgumentIndexError",
    "InvalidEmbeddedCredentialError",
    "ConfigurationError",
    "BuildError",
]
