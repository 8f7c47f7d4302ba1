import pytest

from matthiashihic.exceptions import (
    ExpectedStringStatementError,
    InvalidArgumentIndexError,
    MissingHeaderError,
    MissingTerminatorError,
    ParsingError,
    TrailingCharactersError,
    UnterminatedStringError,
)
from matthiashihic.models import ParseResult
from matthiashihic.parser import ParserState, SourceParser, decode_literal, parse_source


def _program(*statements: str) -> str:
    return "hihi!\n" + "".join(f"{s}\n" for s in statements) + "eat that java!\n"


def test_say_hello_scenario(hello_source):
    result = parse_source(hello_source)

    assert isinstance(result, ParseResult)
    if result.pseudocode != "say hello":
        raise AssertionError(result.pseudocode)
    if result.required_args != []:
        raise AssertionError


def test_two_statements_with_placeholders(add_source):
    result = parse_source(add_source)

    if result.pseudocode != "add {ARG_1} and {ARG_2}\nthen double it":
        raise AssertionError(result.pseudocode)
    if result.required_args != [1, 2]:
        raise AssertionError
    assert result.required_line_count == 2


def test_header_then_terminator_is_empty_program():
    result = parse_source("hihi!\neat that java!")

    assert result.statements == []
    assert result.pseudocode == ""
    assert result.required_args == []


def test_required_args_sorted_across_statements():
    result = parse_source(_program('"take €3"', '"and €1"', '"and €3 again"'))

    assert result.required_args == [1, 3]
    assert result.required_line_count == 3


def test_statement_records_raw_decoded_and_resolved():
    result = parse_source(_program('   "greet €1\\t!"   '))
    stmt = result.statements[0]

    assert stmt.line_number == 2
    assert stmt.raw == '"greet €1\\t!"'
    assert stmt.decoded == "greet €1\t!"
    assert stmt.resolved == "greet {ARG_1}\t!"


def test_blank_lines_and_surrounding_whitespace_are_ignored():
    source = "\n\n   hihi!  \n\n  \"one\"\n\n\t\"two\"\n\n  eat that java!  \n"
    result = parse_source(source)

    assert [s.resolved for s in result.statements] == ["one", "two"]
    assert [s.line_number for s in result.statements] == [5, 7]


def test_everything_after_terminator_is_ignored():
    source = _program('"real"') + "not a statement\n\"also ignored €0\"\nhihi!\n"
    result = parse_source(source)

    assert result.pseudocode == "real"
    assert result.required_args == []


def test_crlf_line_endings():
    result = parse_source('hihi!\r\n"say hello"\r\neat that java!\r\n')
    assert result.pseudocode == "say hello"


def test_escaped_quote_decodes_to_quote():
    result = parse_source(_program('"a\\"b"'))
    assert result.pseudocode == 'a"b'


def test_escaped_backslash_then_escaped_quote():
    result = parse_source(_program('"a\\\\\\"b"'))
    assert result.pseudocode == 'a\\"b'


def test_newline_escape_produces_two_lines():
    result = parse_source(_program('"x\\ny"'))

    assert result.pseudocode == "x\ny"
    assert result.pseudocode.splitlines() == ["x", "y"]


def test_tab_and_carriage_return_escapes():
    result = parse_source(_program('"a\\tb\\rc"'))
    assert result.pseudocode == "a\tb\rc"


def test_unknown_escape_keeps_character_without_backslash():
    result = parse_source(_program('"\\q\\€1"'))

    # the escaped marker still reaches the placeholder resolver
    assert result.statements[0].decoded == "q€1"
    assert result.required_args == [1]


def test_decode_literal_returns_raw_slice():
    raw, decoded = decode_literal('"hi" ', 3)
    assert raw == '"hi"'
    assert decoded == "hi"


def test_empty_source_is_missing_header():
    with pytest.raises(MissingHeaderError) as excinfo:
        parse_source("   \n\n")
    assert "Empty file" in excinfo.value.message


def test_wrong_header_is_reported_with_line():
    with pytest.raises(MissingHeaderError) as excinfo:
        parse_source('\n"say hello"\neat that java!\n')

    err = excinfo.value
    if err.line_number != 2:
        raise AssertionError(err.line_number)
    if "hihi!" not in err.message:
        raise AssertionError


def test_header_must_match_exactly():
    with pytest.raises(MissingHeaderError):
        parse_source("hihi!!\neat that java!\n")


def test_non_string_statement():
    with pytest.raises(ExpectedStringStatementError) as excinfo:
        parse_source("hihi!\n\nprint(1)\neat that java!\n")

    err = excinfo.value
    assert err.line_number == 3
    assert err.content == "print(1)"
    assert "line 3" in err.message


def test_trailing_characters_after_closing_quote():
    with pytest.raises(TrailingCharactersError) as excinfo:
        parse_source(_program('"say" hello'))

    err = excinfo.value
    assert err.line_number == 2
    assert err.content == " hello"


def test_unterminated_string():
    with pytest.raises(UnterminatedStringError) as excinfo:
        parse_source(_program('"never closed'))
    assert excinfo.value.line_number == 2


def test_escaped_closing_quote_is_unterminated():
    with pytest.raises(UnterminatedStringError):
        parse_source(_program('"ends with escape\\"'))


@pytest.mark.parametrize("count", [0, 1, 5])
def test_missing_terminator(count):
    source = "hihi!\n" + '"valid"\n' * count

    with pytest.raises(MissingTerminatorError) as excinfo:
        parse_source(source)
    assert "eat that java!" in excinfo.value.message


def test_zero_placeholder_reports_line():
    with pytest.raises(InvalidArgumentIndexError) as excinfo:
        parse_source(_program('"ok €1"', '"bad €0"'))

    err = excinfo.value
    assert err.line_number == 3
    assert err.content == '"bad €0"'


def test_grammar_errors_share_a_base_class():
    for source in ("", "hihi!\nx\neat that java!", "hihi!\n"):
        with pytest.raises(ParsingError):
            parse_source(source)


def test_parser_state_reaches_done():
    parser = SourceParser()
    parser.parse("hihi!\neat that java!\n")
    assert parser.state is ParserState.DONE


def test_oversized_placeholder_reports_line():
    with pytest.raises(InvalidArgumentIndexError) as excinfo:
        parse_source(_program('"fine"', '"take €99999999999999999999 lines"'))

    assert excinfo.value.line_number == 3
    assert "Invalid placeholder number" in excinfo.value.message
