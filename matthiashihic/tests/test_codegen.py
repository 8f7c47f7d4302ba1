import pytest

from matthiashihic.codegen import (
    DEFAULT_API_KEY_ENV,
    DEFAULT_ENDPOINT_URL,
    ProgramGenerator,
    assemble_sections,
    escape_literal,
    generate_program,
)
from matthiashihic.config import CompilerConfig
from matthiashihic.exceptions import GenerationError
from matthiashihic.models import GeneratedProgram
from matthiashihic.parser import parse_source
from matthiashihic.templates import (
    ARGUMENTS,
    CREDENTIALS_EMBEDDED,
    CREDENTIALS_ENV_ONLY,
    ENTRYPOINT,
    PRELUDE,
    STREAMING,
    SYSTEM_PROMPT,
)


def test_escape_literal_standard_escapes():
    assert escape_literal('a\\b"c\nd\re\tf') == 'a\\\\b\\"c\\nd\\re\\tf'


def test_escape_literal_backslash_before_quote():
    # a backslash-quote pair must not turn into an escaped quote
    assert escape_literal('\\"') == '\\\\\\"'


def test_escape_literal_other_control_characters():
    assert escape_literal("a\x00b\x1bc\x7f") == "a\\x00b\\x1bc\\x7f"


def test_escape_literal_keeps_unicode():
    assert escape_literal("€ ünïcödé 🙂") == "€ ünïcödé 🙂"


@pytest.mark.parametrize(
    ("api_key", "required_args"),
    [(None, []), ("sk-test", []), (None, [1, 2]), ("sk-test", [3])],
)
def test_every_variant_compiles(api_key, required_args):
    program = generate_program(api_key, "gpt-4", "do {ARG_1} things", required_args)

    assert isinstance(program, GeneratedProgram)
    compile(program.source, "<generated>", "exec")


def test_no_placeholders_means_no_stdin_logic():
    program = generate_program(None, "gpt-4", "say hello", [])

    assert not program.reads_stdin
    for fragment in ("stdin", "read_arguments", "substitute_arguments", "REQUIRED_LINES"):
        if fragment in program.source:
            raise AssertionError(f"{fragment!r} should not be generated")


def test_placeholders_require_max_index_lines(add_source):
    result = parse_source(add_source)
    program = generate_program(None, "gpt-4", result.pseudocode, result.required_args)

    assert program.required_args == [1, 2]
    assert program.required_line_count == 2
    assert "REQUIRED_LINES = 2\n" in program.source
    assert 'pseudocode.replace("{ARG_1}", lines[0])' in program.source
    assert 'pseudocode.replace("{ARG_2}", lines[1])' in program.source


def test_sparse_indices_read_up_to_the_largest():
    program = generate_program(None, "gpt-4", "{ARG_2} {ARG_5}", [5, 2, 2])

    assert program.required_args == [2, 5]
    assert "REQUIRED_LINES = 5\n" in program.source
    assert "lines[1])" in program.source
    assert "lines[4])" in program.source
    assert "lines[0])" not in program.source


def test_non_positive_index_is_rejected():
    with pytest.raises(GenerationError):
        generate_program(None, "gpt-4", "x", [0, 1])


def test_embedded_literals_survive_escaping(load_program):
    pseudocode = 'say "hi" \\ then\nnewline\tand tab\r'
    model = 'odd "model"\\name'
    program = generate_program(None, model, pseudocode, [])
    ns = load_program(program.source)

    assert ns["PSEUDOCODE"] == pseudocode
    assert ns["MODEL"] == model
    assert ns["SYSTEM_PROMPT"] == SYSTEM_PROMPT
    assert ns["API_URL"] == DEFAULT_ENDPOINT_URL
    assert ns["API_KEY_ENV"] == DEFAULT_API_KEY_ENV


def test_api_key_is_not_embedded_in_plain_text():
    program = generate_program("sk-supersecret", "gpt-4", "say hello", [])

    assert program.has_embedded_credential
    assert "sk-supersecret" not in program.source
    assert "EMBEDDED_KEY = bytes([" in program.source
    assert "XOR_KEY = bytes([" in program.source


def test_without_api_key_nothing_is_embedded():
    program = generate_program(None, "gpt-4", "say hello", [])

    assert not program.has_embedded_credential
    assert "EMBEDDED_KEY" not in program.source
    assert "XOR_KEY" not in program.source


def test_generator_uses_compiler_config(load_program):
    config = CompilerConfig(
        endpoint_url="http://localhost:1234/v1/chat/completions",
        api_key_env="LOCAL_LLM_KEY",
        connect_timeout=5,
    )
    program = ProgramGenerator.from_config(config).generate(None, "local", "say hi", [])
    ns = load_program(program.source)

    assert ns["API_URL"] == "http://localhost:1234/v1/chat/completions"
    assert ns["API_KEY_ENV"] == "LOCAL_LLM_KEY"
    assert "httpx.Timeout(5.0, read=None)" in program.source


def test_generated_program_is_a_script():
    program = generate_program(None, "gpt-4", "say hello", [])

    assert program.source.startswith("#!/usr/bin/env python3\n")
    assert 'if __name__ == "__main__":' in program.source
    assert "pseudocode = PSEUDOCODE\n        asyncio.run(" in program.source


@pytest.mark.parametrize("timeout", [float("inf"), float("-inf"), float("nan"), 0, -1.5, "soon"])
def test_unusable_connect_timeout_is_rejected(timeout):
    generator = ProgramGenerator(connect_timeout=timeout)

    with pytest.raises(GenerationError):
        generator.generate(None, "gpt-4", "say hello", [])


def test_generated_timeout_is_a_float_literal(load_program):
    program = ProgramGenerator(connect_timeout=12).generate(None, "gpt-4", "say hello", [])

    assert "httpx.Timeout(12.0, read=None)" in program.source
    load_program(program.source)


def test_sections_are_assembled_in_order():
    sections = [
        (PRELUDE, "p"),
        (CREDENTIALS_ENV_ONLY, "c"),
        (ARGUMENTS, "a"),
        (STREAMING, "s"),
        (ENTRYPOINT, "e"),
    ]
    assert assemble_sections(sections) == "pcase"
    assert assemble_sections([s for s in sections if s[0] is not ARGUMENTS]) == "pcse"


@pytest.mark.parametrize(
    "sections",
    [
        [(PRELUDE, ""), (STREAMING, ""), (CREDENTIALS_ENV_ONLY, ""), (ENTRYPOINT, "")],
        [(PRELUDE, ""), (CREDENTIALS_ENV_ONLY, ""), (CREDENTIALS_EMBEDDED, ""), (STREAMING, ""), (ENTRYPOINT, "")],
        [(PRELUDE, ""), (CREDENTIALS_ENV_ONLY, ""), (ENTRYPOINT, "")],
        [],
    ],
)
def test_misassembled_sections_are_rejected(sections):
    with pytest.raises(GenerationError):
        assemble_sections(sections)
