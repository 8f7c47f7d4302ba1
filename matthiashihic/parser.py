"""
Parser module for the matthiashihic compiler

Recognizes the three-part source grammar::

    hihi!
    "first statement"
    "second statement with €1"
    eat that java!
    anything down here is a comment

in one left-to-right pass and extracts the decoded, placeholder-resolved
statements plus the set of positional arguments they reference.
"""

import logging
from enum import Enum

from .exceptions import (
    ExpectedStringStatementError,
    InvalidArgumentIndexError,
    MissingHeaderError,
    MissingTerminatorError,
    TrailingCharactersError,
    UnterminatedStringError,
)
from .models import ParseResult, Statement
from .placeholders import resolve_placeholders

logger = logging.getLogger(__name__)

HEADER = "hihi!"
TERMINATOR = "eat that java!"
QUOTE = '"'
BACKSLASH = "\\"

# Escapes not listed here keep the escaped character and drop the backslash
ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
}


class ParserState(Enum):
    """Position of the line scanner within the source grammar"""

    SEEK_HEADER = "seek_header"
    IN_BODY = "in_body"
    DONE = "done"


def split_lines(text: str) -> list[str]:
    """Split on LF, dropping one trailing CR per line"""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def decode_literal(line: str, line_number: int) -> tuple[str, str]:
    """
    Decode the quoted string literal a statement line starts with.

    Args:
        line: Statement line with leading whitespace removed; must start
            with a quote
        line_number: 1-based line number for error reporting

    Returns:
        (raw literal including quotes, decoded text)

    Raises:
        TrailingCharactersError: Non-whitespace after the closing quote
        UnterminatedStringError: No unescaped closing quote on the line
    """
    decoded: list[str] = []
    escaped = False

    for pos in range(1, len(line)):
        ch = line[pos]
        if escaped:
            decoded.append(ESCAPES.get(ch, ch))
            escaped = False
        elif ch == BACKSLASH:
            escaped = True
        elif ch == QUOTE:
            rest = line[pos + 1 :]
            if rest.strip():
                raise TrailingCharactersError(line_number, rest)
            return line[: pos + 1], "".join(decoded)
        else:
            decoded.append(ch)

    raise UnterminatedStringError(line_number, line)


class SourceParser:
    """
    Line-oriented parser for .matthiashihic sources

    The scanner never backtracks; every line is looked at once and scanning
    stops at the terminator.
    """

    def __init__(self, header: str = HEADER, terminator: str = TERMINATOR):
        self.header = header
        self.terminator = terminator
        self.state = ParserState.SEEK_HEADER

    def parse(self, text: str) -> ParseResult:
        """
        Parse a complete source program

        Args:
            text: Source text

        Returns:
            ParseResult with the statements and sorted argument indices

        Raises:
            ParsingError: On any grammar violation
        """
        self.state = ParserState.SEEK_HEADER
        statements: list[Statement] = []
        required: set[int] = set()

        for line_number, line in enumerate(split_lines(text), 1):
            stripped = line.strip()
            if not stripped:
                continue

            if self.state is ParserState.SEEK_HEADER:
                if stripped != self.header:
                    raise MissingHeaderError(line_number, line)
                self.state = ParserState.IN_BODY
                continue

            if stripped == self.terminator:
                self.state = ParserState.DONE
                break

            statements.append(self._parse_statement(line, line_number, required))

        if self.state is ParserState.SEEK_HEADER:
            raise MissingHeaderError()
        if self.state is not ParserState.DONE:
            raise MissingTerminatorError()

        required_args = sorted(required)
        logger.debug(
            "Parsed %d statement(s), required arguments: %s", len(statements), required_args
        )
        return ParseResult(statements=statements, required_args=required_args)

    def _parse_statement(self, line: str, line_number: int, required: set[int]) -> Statement:
        body = line.lstrip()
        if not body.startswith(QUOTE):
            raise ExpectedStringStatementError(line_number, line)

        raw, decoded = decode_literal(body, line_number)
        try:
            resolved = resolve_placeholders(decoded, required)
        except InvalidArgumentIndexError as e:
            e.with_context(line_number=line_number, code_snippet=line)
            raise

        return Statement(line_number=line_number, raw=raw, decoded=decoded, resolved=resolved)


def parse_source(text: str) -> ParseResult:
    """Parse source text with the default header and terminator"""
    return SourceParser().parse(text)
