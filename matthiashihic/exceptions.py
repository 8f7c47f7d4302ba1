"""
Custom exception hierarchy for the matthiashihic compiler

Every error raised by the compiler derives from TranslatorError and carries
an ErrorContext with the source location and fix suggestions, so the CLI can
print a single helpful message and exit.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorContext:
    """
    Context information for an error occurrence
    """

    line_number: int | None = None
    code_snippet: str | None = None
    suggestions: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_suggestion(self, suggestion: str):
        """Add a suggestion for fixing the error"""
        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)

    def format_location(self) -> str:
        """Format the error location"""
        if self.line_number is not None:
            return f"line {self.line_number}"
        return "unknown location"


class TranslatorError(Exception):
    """
    Base exception for all compiler errors

    Provides rich error context and formatting capabilities
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize the compiler error

        Args:
            message: Main error message
            context: Optional error context with location and suggestions
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.cause = cause

    def add_suggestion(self, suggestion: str):
        """Add a suggestion for fixing the error"""
        self.context.add_suggestion(suggestion)

    def with_context(self, **kwargs) -> "TranslatorError":
        """
        Add context information to the error

        Returns:
            Self for method chaining
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
        return self

    def format_error(self, include_suggestions: bool = True) -> str:
        """
        Format the error message with full context

        Args:
            include_suggestions: Whether to include fix suggestions

        Returns:
            Formatted error message
        """
        parts = [f"{self.__class__.__name__}: {self.message}"]

        location = self.context.format_location()
        if location != "unknown location":
            parts.append(f"  Location: {location}")

        if self.context.code_snippet:
            parts.append(f"  Code: {self.context.code_snippet}")

        if include_suggestions and self.context.suggestions:
            parts.append("  Suggestions:")
            for i, suggestion in enumerate(self.context.suggestions, 1):
                parts.append(f"    {i}. {suggestion}")

        if self.cause:
            parts.append(f"  Caused by: {type(self.cause).__name__}: {str(self.cause)}")

        return "\n".join(parts)

    def __str__(self) -> str:
        return self.message


class ParsingError(TranslatorError):
    """
    Error while reading a .matthiashihic source

    All grammar errors are raised at translation time, before anything is
    generated, and name the 1-based line they were found on.
    """

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        content: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)

        if line_number is not None:
            self.context.line_number = line_number
        if content is not None:
            self.context.code_snippet = content

    @property
    def line_number(self) -> int | None:
        return self.context.line_number

    @property
    def content(self) -> str | None:
        return self.context.code_snippet


class MissingHeaderError(ParsingError):
    """The first non-blank line is not the ``hihi!`` header"""

    def __init__(self, line_number: int | None = None, content: str | None = None):
        if content is None:
            message = "Empty file; expected 'hihi!' header"
        else:
            message = "First non-empty line must be exactly: hihi!"
        super().__init__(message, line_number=line_number, content=content)
        self.add_suggestion("Start the program with a line containing only: hihi!")


class ExpectedStringStatementError(ParsingError):
    """A body line is neither a quoted string nor the terminator"""

    def __init__(self, line_number: int, content: str):
        super().__init__(
            f"Only quoted string statements allowed. Error at line {line_number}: {content}",
            line_number=line_number,
            content=content,
        )
        self.add_suggestion('Wrap the statement in double quotes, e.g. "say hello"')


class UnterminatedStringError(ParsingError):
    """A quoted statement has no unescaped closing quote"""

    def __init__(self, line_number: int, content: str):
        super().__init__(
            f"Missing closing quote for string starting at line {line_number}: {content}",
            line_number=line_number,
            content=content,
        )
        self.add_suggestion('Close the string with an unescaped " on the same line')


class TrailingCharactersError(ParsingError):
    """Non-whitespace text follows the closing quote of a statement"""

    def __init__(self, line_number: int, trailing: str):
        super().__init__(
            f"Trailing characters after closing quote at line {line_number}: {trailing}",
            line_number=line_number,
            content=trailing,
        )
        self.add_suggestion('Escape quotes inside a statement as \\"')


class MissingTerminatorError(ParsingError):
    """The source ends before the ``eat that java!`` terminator"""

    def __init__(self):
        super().__init__("Missing terminator line: eat that java!")
        self.add_suggestion("End the program with a line containing only: eat that java!")


class InvalidArgumentIndexError(ParsingError):
    """A placeholder names argument 0 or an unparseable index"""

    def __init__(self, message: str, index_text: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        if index_text is not None:
            self.context.metadata["index_text"] = index_text
        self.add_suggestion("Placeholders are 1-based: use €1 for the first stdin line")
        self.add_suggestion("Write €€ for a literal € character")


class GenerationError(TranslatorError):
    """
    Error while generating program text

    Not expected for grammar-valid input; raised when generator arguments
    are inconsistent (e.g. non-positive argument indices).
    """


class InvalidEmbeddedCredentialError(TranslatorError):
    """Recovered credential bytes are not valid UTF-8 text"""


class ConfigurationError(TranslatorError):
    """
    Error in compiler configuration

    Raised when configuration is invalid or incompatible
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_value: Any | None = None,
        **kwargs,
    ):
        """
        Initialize configuration error

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            config_value: Invalid configuration value
            **kwargs: Additional context arguments
        """
        super().__init__(message, **kwargs)

        if config_key:
            self.context.metadata["config_key"] = config_key

        if config_value is not None:
            self.context.metadata["config_value"] = config_value

        if config_key == "default_model":
            self.add_suggestion("Use a model name the chat endpoint accepts, e.g. gpt-4")
        elif config_key == "endpoint_url":
            self.add_suggestion("Use an absolute http(s) URL for the chat completions endpoint")


class BuildError(TranslatorError):
    """
    Error while turning generated program text into an executable

    Raised by the build step (staging, dependency vendoring, archiving)
    """

    def __init__(self, message: str, stage: str | None = None, **kwargs):
        super().__init__(message, **kwargs)

        if stage:
            self.context.metadata["build_stage"] = stage

        if stage == "vendor":
            self.add_suggestion("Check network access to the package index")
            self.add_suggestion("Rebuild with --no-bundle to use the interpreter's packages")
        elif stage == "archive":
            self.add_suggestion("Check that the output path is writable")

    @property
    def stage(self) -> str | None:
        return self.context.metadata.get("build_stage")
