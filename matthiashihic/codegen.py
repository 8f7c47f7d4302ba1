"""
Program generator for the matthiashihic compiler

Turns parsed pseudocode into the complete source of a standalone Python
program. Generation is a pure text transformation: nothing here touches the
filesystem or the network, so the output can be inspected, compiled or
executed in-process by tests before any build step runs.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from . import __version__
from .exceptions import GenerationError
from .models import GeneratedProgram, ObfuscatedCredential
from .obfuscation import generate_keystream, obfuscate
from .placeholders import placeholder_token
from .templates import (
    ARGUMENTS,
    CREDENTIALS_EMBEDDED,
    CREDENTIALS_ENV_ONLY,
    ENTRYPOINT,
    PRELUDE,
    REQUIRED_SECTIONS,
    SECTION_ORDER,
    STREAMING,
    SYSTEM_PROMPT,
    ProgramTemplate,
)

if TYPE_CHECKING:
    from .config import CompilerConfig

logger = logging.getLogger(__name__)

# a template paired with its filled-in text
Section = tuple[ProgramTemplate, str]

DEFAULT_MODEL = "gpt-4"
DEFAULT_ENDPOINT_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_API_KEY_ENV = "OPENAI_API_KEY"
DEFAULT_CONNECT_TIMEOUT = 30.0

# Backslash must come first so later replacements are not escaped twice
_LITERAL_ESCAPES = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
)


def escape_literal(value: str) -> str:
    """
    Escape text for embedding between double quotes in generated source.

    Backslash, quote, newline, carriage return and tab get their usual
    escapes; any remaining control character becomes ``\\xNN``.
    """
    for raw, escaped in _LITERAL_ESCAPES:
        value = value.replace(raw, escaped)
    return "".join(
        f"\\x{ord(ch):02x}" if ord(ch) < 0x20 or ord(ch) == 0x7F else ch for ch in value
    )


def _byte_list(data: bytes) -> str:
    return ", ".join(str(b) for b in data)


def assemble_sections(sections: list[Section]) -> str:
    """
    Join filled sections into one program text

    Each section kind may appear at most once and in SECTION_ORDER; every
    kind in REQUIRED_SECTIONS must be present.

    Raises:
        GenerationError: If the sections are out of order, repeated or missing
    """
    kinds = [template.kind for template, _ in sections]
    positions = [SECTION_ORDER.index(kind) for kind in kinds]
    if positions != sorted(set(positions)):
        names = ", ".join(kind.value for kind in kinds)
        raise GenerationError(f"Program sections out of order or repeated: {names}")

    missing = [kind.value for kind in REQUIRED_SECTIONS if kind not in kinds]
    if missing:
        raise GenerationError(f"Program is missing sections: {', '.join(missing)}")

    return "".join(text for _, text in sections)


class ProgramGenerator:
    """
    Assembles generated program text from template sections
    """

    def __init__(
        self,
        endpoint_url: str = DEFAULT_ENDPOINT_URL,
        api_key_env: str = DEFAULT_API_KEY_ENV,
        keystream_label: str = "matthiashihic",
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.endpoint_url = endpoint_url
        self.api_key_env = api_key_env
        self.keystream_label = keystream_label
        self.connect_timeout = connect_timeout
        self.system_prompt = system_prompt

    @classmethod
    def from_config(cls, config: CompilerConfig) -> ProgramGenerator:
        return cls(
            endpoint_url=config.endpoint_url,
            api_key_env=config.api_key_env,
            keystream_label=config.keystream_label,
            connect_timeout=config.connect_timeout,
        )

    def generate(
        self,
        api_key: str | None,
        model: str,
        pseudocode: str,
        required_args: list[int],
    ) -> GeneratedProgram:
        """
        Generate a complete program

        Args:
            api_key: Credential to embed (obfuscated), or None to require
                one from the environment at run time
            model: Chat model identifier
            pseudocode: Newline-joined resolved statements
            required_args: Placeholder indices referenced by the statements

        Returns:
            GeneratedProgram with the source text

        Raises:
            GenerationError: If an argument index is not positive or the
                connect timeout is not a positive finite number
        """
        indices = sorted(set(required_args))
        if any(i < 1 for i in indices):
            raise GenerationError(f"Argument indices must be positive, got {indices}")
        try:
            timeout = float(self.connect_timeout)
        except (TypeError, ValueError) as e:
            raise GenerationError(
                f"Connect timeout must be a number, got {self.connect_timeout!r}", cause=e
            ) from e
        if not math.isfinite(timeout) or timeout <= 0:
            raise GenerationError(f"Connect timeout must be a positive finite number, got {timeout}")

        credential = None
        if api_key is not None:
            credential = obfuscate(api_key, generate_keystream(self.keystream_label))

        sections = [
            self._prelude(model, pseudocode),
            self._credentials(credential),
        ]
        if indices:
            sections.append(self._arguments(indices))
        sections.append((STREAMING, STREAMING.format(timeout=repr(timeout))))
        sections.append(self._entrypoint(bool(indices)))

        logger.debug(
            "Generated program for model %s (%d required argument(s), embedded key: %s)",
            model,
            max(indices, default=0),
            credential is not None,
        )
        return GeneratedProgram(
            source=assemble_sections(sections),
            model=model,
            pseudocode=pseudocode,
            required_args=indices,
            has_embedded_credential=credential is not None,
        )

    def _prelude(self, model: str, pseudocode: str) -> Section:
        return PRELUDE, PRELUDE.format(
            version=__version__,
            api_url=escape_literal(self.endpoint_url),
            api_key_env=escape_literal(self.api_key_env),
            model=escape_literal(model),
            pseudocode=escape_literal(pseudocode),
            system_prompt=escape_literal(self.system_prompt),
        )

    def _credentials(self, credential: ObfuscatedCredential | None) -> Section:
        if credential is None:
            return CREDENTIALS_ENV_ONLY, CREDENTIALS_ENV_ONLY.format()
        return CREDENTIALS_EMBEDDED, CREDENTIALS_EMBEDDED.format(
            ciphertext=_byte_list(credential.ciphertext),
            keystream=_byte_list(credential.keystream),
        )

    def _arguments(self, indices: list[int]) -> Section:
        substitutions = "\n".join(
            f'    pseudocode = pseudocode.replace("{escape_literal(placeholder_token(i))}", '
            f"lines[{i - 1}])"
            for i in indices
        )
        return ARGUMENTS, ARGUMENTS.format(required_lines=max(indices), substitutions=substitutions)

    def _entrypoint(self, reads_arguments: bool) -> Section:
        steps = ""
        if reads_arguments:
            steps = (
                "        lines = read_arguments()\n"
                "        pseudocode = substitute_arguments(pseudocode, lines)"
            )
        text = ENTRYPOINT.format(argument_steps=steps)
        # no blank line left behind in main() when there is nothing to read
        return ENTRYPOINT, text.replace("pseudocode = PSEUDOCODE\n\n", "pseudocode = PSEUDOCODE\n")


def generate_program(
    api_key: str | None,
    model: str,
    pseudocode: str,
    required_args: list[int],
) -> GeneratedProgram:
    """Generate a program with default endpoint settings"""
    return ProgramGenerator().generate(api_key, model, pseudocode, required_args)
