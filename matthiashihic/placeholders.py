"""
Positional placeholder resolution

A statement may reference stdin lines with ``€N`` (1-based). Each reference
is rewritten to a substitution token the generated program replaces at run
time; ``€€`` stands for a literal ``€``.
"""

from .exceptions import InvalidArgumentIndexError

MARKER = "€"

# A generated program reads this many stdin lines at most
MAX_ARGUMENT_INDEX = 65535


def placeholder_token(index: int) -> str:
    """Substitution token for argument ``index`` in generated program text"""
    return f"{{ARG_{index}}}"


def _is_digit(ch: str) -> bool:
    # str.isdigit() also accepts superscripts and other scripts' digits
    return "0" <= ch <= "9"


def resolve_placeholders(text: str, required: set[int]) -> str:
    """
    Rewrite argument markers in a decoded statement.

    Args:
        text: Decoded statement text (escapes already resolved)
        required: Accumulator shared across statements; every referenced
            index is added to it

    Returns:
        Text with ``€N`` replaced by tokens and ``€€`` collapsed to ``€``

    Raises:
        InvalidArgumentIndexError: For ``€0``, an unparseable index or one
            above MAX_ARGUMENT_INDEX
    """
    out: list[str] = []
    pos = 0
    length = len(text)

    while pos < length:
        ch = text[pos]
        if ch != MARKER or pos + 1 >= length:
            out.append(ch)
            pos += 1
            continue

        nxt = text[pos + 1]
        if nxt == MARKER:
            out.append(MARKER)
            pos += 2
        elif _is_digit(nxt):
            end = pos + 1
            while end < length and _is_digit(text[end]):
                end += 1
            digits = text[pos + 1 : end]
            try:
                index = int(digits)
            except ValueError as e:
                raise InvalidArgumentIndexError(
                    f"Invalid placeholder number: {MARKER}{digits}",
                    index_text=digits,
                    cause=e,
                ) from e
            if index == 0:
                raise InvalidArgumentIndexError(
                    f"Placeholder indices must start at 1 (found {MARKER}{digits})",
                    index_text=digits,
                )
            if index > MAX_ARGUMENT_INDEX:
                raise InvalidArgumentIndexError(
                    f"Invalid placeholder number: {MARKER}{digits} "
                    f"(at most {MAX_ARGUMENT_INDEX} arguments are supported)",
                    index_text=digits,
                )
            required.add(index)
            out.append(placeholder_token(index))
            pos = end
        else:
            # lone marker, kept as written
            out.append(ch)
            pos += 1

    return "".join(out)
