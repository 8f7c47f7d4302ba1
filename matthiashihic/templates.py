"""
Program templates for the matthiashihic code generator

The generated program is assembled from the sections below. Placeholders use
``string.Template`` syntax (``$name``) so the Python source in the sections
can keep its braces as written.
"""

from dataclasses import dataclass
from enum import Enum
from string import Template


class SectionKind(Enum):
    """Role of a template section in the generated program"""

    PRELUDE = "prelude"
    CREDENTIALS = "credentials"
    ARGUMENTS = "arguments"
    STREAMING = "streaming"
    ENTRYPOINT = "entrypoint"


# Order of sections in a generated program; ARGUMENTS is the only optional one
SECTION_ORDER = (
    SectionKind.PRELUDE,
    SectionKind.CREDENTIALS,
    SectionKind.ARGUMENTS,
    SectionKind.STREAMING,
    SectionKind.ENTRYPOINT,
)
REQUIRED_SECTIONS = tuple(kind for kind in SECTION_ORDER if kind is not SectionKind.ARGUMENTS)


@dataclass
class ProgramTemplate:
    """One section of generated program text"""

    name: str
    kind: SectionKind
    template: str

    def format(self, **kwargs) -> str:
        """Fill the section; every placeholder must be supplied"""
        return Template(self.template).substitute(**kwargs)


SYSTEM_PROMPT = (
    "You are an assistant that acts as if it were a program written in a language "
    "called 'matthiashihic'. This language allows every string to become a new string. "
    "Don't take it too literally, and ignore everything that doesn't make sense. "
    "If the user asks you to 'say' or 'make' something, for instance, just print it. "
    "Answer the code statement as if you had computed them. "
    "Do not reply with anything but the result."
)


PRELUDE = ProgramTemplate(
    name="prelude",
    kind=SectionKind.PRELUDE,
    template='''#!/usr/bin/env python3
"""Generated by matthiashihic $version. Do not edit."""

import asyncio
import codecs
import json
import os
import sys

import httpx

API_URL = "$api_url"
API_KEY_ENV = "$api_key_env"
MODEL = "$model"
PSEUDOCODE = "$pseudocode"
SYSTEM_PROMPT = "$system_prompt"


class ProgramError(Exception):
    """Failure reported to the user before exiting"""

    def __init__(self, message, exit_code=1):
        super().__init__(message)
        self.exit_code = exit_code
''',
)


CREDENTIALS_EMBEDDED = ProgramTemplate(
    name="credentials_embedded",
    kind=SectionKind.CREDENTIALS,
    template='''

EMBEDDED_KEY = bytes([$ciphertext])
XOR_KEY = bytes([$keystream])


def resolve_api_key():
    """Environment first, then the key embedded at compile time"""
    env_key = os.environ.get(API_KEY_ENV)
    if env_key:
        return env_key
    decrypted = bytes(b ^ XOR_KEY[i % len(XOR_KEY)] for i, b in enumerate(EMBEDDED_KEY))
    try:
        return decrypted.decode("utf-8")
    except UnicodeDecodeError:
        raise ProgramError("Invalid embedded API key") from None
''',
)


CREDENTIALS_ENV_ONLY = ProgramTemplate(
    name="credentials_env_only",
    kind=SectionKind.CREDENTIALS,
    template='''

def resolve_api_key():
    """No key was embedded at compile time, so the environment must supply one"""
    env_key = os.environ.get(API_KEY_ENV)
    if env_key:
        return env_key
    raise ProgramError(f"No API key found. Set {API_KEY_ENV} environment variable.")
''',
)


ARGUMENTS = ProgramTemplate(
    name="arguments",
    kind=SectionKind.ARGUMENTS,
    template='''

REQUIRED_LINES = $required_lines


def read_arguments(stream=None):
    """Read exactly REQUIRED_LINES lines from piped stdin"""
    stream = sys.stdin if stream is None else stream
    prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "program"
    if stream.isatty():
        raise ProgramError(
            f"This program expects {REQUIRED_LINES} line(s) from stdin.\\n"
            f"Usage: echo 'value' | {prog} or cat file | {prog}",
            exit_code=2,
        )

    lines = []
    for line in stream:
        lines.append(line.removesuffix("\\n").removesuffix("\\r"))
        if len(lines) >= REQUIRED_LINES:
            break

    if len(lines) < REQUIRED_LINES:
        raise ProgramError(
            f"Expected {REQUIRED_LINES} arguments from stdin, got {len(lines)}\\n"
            f"Usage: Pipe {REQUIRED_LINES} lines into this program, one per line.",
            exit_code=2,
        )
    return lines


def substitute_arguments(pseudocode, lines):
    """Replace each placeholder token with its 1-based stdin line"""
$substitutions
    return pseudocode
''',
)


STREAMING = ProgramTemplate(
    name="streaming",
    kind=SectionKind.STREAMING,
    template='''

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def extract_delta(data):
    """choices[0].delta.content of one event, or None"""
    try:
        event = json.loads(data)
    except ValueError:
        return None
    try:
        content = event["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


class StreamDecoder:
    """Splits streamed bytes into data lines and yields content deltas"""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.buffer = ""
        self.done = False

    def feed(self, chunk):
        """Consume one chunk; yields each non-empty delta as its line completes"""
        self.buffer += self._decoder.decode(chunk)
        while True:
            newline = self.buffer.find("\\n")
            if newline < 0:
                return
            line = self.buffer[:newline]
            self.buffer = self.buffer[newline + 1 :]

            if not line.startswith(DATA_PREFIX):
                continue
            data = line[len(DATA_PREFIX) :]
            if data.strip() == DONE_SENTINEL:
                self.done = True
                return

            content = extract_delta(data)
            if content:
                yield content


async def run_chat_stream(api_key, model, pseudocode, out=None, transport=None):
    """POST the pseudocode and print the answer as it streams in"""
    out = sys.stdout if out is None else out
    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": pseudocode},
        ],
        "stream": True,
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }

    timeout = httpx.Timeout($timeout, read=None)
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        async with client.stream("POST", API_URL, json=body, headers=headers) as response:
            if not response.is_success:
                error_text = (await response.aread()).decode("utf-8", errors="replace")
                status = f"{response.status_code} {response.reason_phrase}".strip()
                raise ProgramError(f"OpenAI API error ({status}): {error_text}")

            decoder = StreamDecoder()
            async for chunk in response.aiter_bytes():
                for delta in decoder.feed(chunk):
                    out.write(delta)
                    out.flush()
                if decoder.done:
                    break

    out.write("\\n")
    out.flush()
''',
)


ENTRYPOINT = ProgramTemplate(
    name="entrypoint",
    kind=SectionKind.ENTRYPOINT,
    template='''

def main(transport=None):
    try:
        api_key = resolve_api_key()
        pseudocode = PSEUDOCODE
$argument_steps
        asyncio.run(run_chat_stream(api_key, MODEL, pseudocode, transport=transport))
    except ProgramError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except (httpx.HTTPError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
''',
)
