"""
Data models for the matthiashihic compiler
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Statement:
    """
    One quoted pseudocode statement of a source program
    """

    line_number: int
    raw: str  # literal as written, quotes included
    decoded: str  # backslash escapes resolved
    resolved: str  # placeholders rewritten to substitution tokens


@dataclass
class ParseResult:
    """
    Result of parsing a source program
    """

    statements: list[Statement]
    required_args: list[int]

    @property
    def pseudocode(self) -> str:
        """Resolved statements joined by newlines, in source order"""
        return "\n".join(s.resolved for s in self.statements)

    @property
    def statement_count(self) -> int:
        return len(self.statements)

    @property
    def required_line_count(self) -> int:
        """Number of stdin lines the generated program must read"""
        return max(self.required_args, default=0)


@dataclass(frozen=True)
class ObfuscatedCredential:
    """
    Credential masked with a repeating-key XOR

    This is obfuscation, not encryption: the keystream is stored right next
    to the ciphertext, so anyone holding both recovers the plaintext.
    """

    ciphertext: bytes
    keystream: bytes

    def __post_init__(self):
        if not self.keystream:
            raise ValueError("Keystream must not be empty")


@dataclass
class GeneratedProgram:
    """
    Complete text of a generated program plus what went into it
    """

    source: str
    model: str
    pseudocode: str
    required_args: list[int] = field(default_factory=list)
    has_embedded_credential: bool = False

    @property
    def reads_stdin(self) -> bool:
        return bool(self.required_args)

    @property
    def required_line_count(self) -> int:
        return max(self.required_args, default=0)
