import pytest

from matthiashihic.exceptions import InvalidEmbeddedCredentialError
from matthiashihic.models import ObfuscatedCredential
from matthiashihic.obfuscation import (
    DEFAULT_LABEL,
    generate_keystream,
    obfuscate,
    reveal,
    xor_bytes,
)


def test_keystream_is_label_and_timestamp():
    keystream = generate_keystream()

    if not keystream.startswith(f"{DEFAULT_LABEL}-".encode()):
        raise AssertionError(keystream)
    suffix = keystream[len(DEFAULT_LABEL) + 1 :]
    assert suffix.isdigit()


def test_keystream_with_custom_label_is_never_empty():
    assert generate_keystream("").startswith(b"-")
    assert len(generate_keystream("x")) > 1


@pytest.mark.parametrize(
    "plaintext",
    ["sk-test-1234567890", "", "ключ-🔑", "a" * 500],
)
def test_round_trip(plaintext):
    credential = obfuscate(plaintext)
    assert reveal(credential) == plaintext


@pytest.mark.parametrize("keystream", [b"\x00", b"k", b"a-much-longer-keystream-than-the-data"])
def test_xor_is_its_own_inverse(keystream):
    data = "secret".encode()
    assert xor_bytes(xor_bytes(data, keystream), keystream) == data


def test_ciphertext_follows_repeating_key():
    credential = obfuscate("abcd", keystream=b"\x01\x02")

    expected = bytes([ord("a") ^ 1, ord("b") ^ 2, ord("c") ^ 1, ord("d") ^ 2])
    assert credential.ciphertext == expected
    assert credential.keystream == b"\x01\x02"


def test_ciphertext_does_not_contain_plaintext():
    credential = obfuscate("sk-supersecret", keystream=b"matthiashihic-1")
    assert b"sk-supersecret" not in credential.ciphertext


def test_empty_keystream_is_rejected():
    with pytest.raises(ValueError):
        xor_bytes(b"data", b"")
    with pytest.raises(ValueError):
        ObfuscatedCredential(ciphertext=b"", keystream=b"")


def test_reveal_rejects_non_utf8():
    credential = ObfuscatedCredential(ciphertext=b"\xff\xfe", keystream=b"\x00")

    with pytest.raises(InvalidEmbeddedCredentialError):
        reveal(credential)
