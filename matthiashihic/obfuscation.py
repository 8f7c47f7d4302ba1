"""
Reversible credential masking for embedding into generated programs

The API key given at compile time is XOR-ed with a keystream derived from a
fixed label and the current time, and both byte strings are written into the
generated program. This keeps the key out of a casual ``strings`` dump and
nothing more: it is obfuscation, not encryption, and anyone holding the
generated program recovers the key trivially.
"""

import time

from .exceptions import InvalidEmbeddedCredentialError
from .models import ObfuscatedCredential

DEFAULT_LABEL = "matthiashihic"


def generate_keystream(label: str = DEFAULT_LABEL) -> bytes:
    """Keystream from a label and a nanosecond timestamp; never empty"""
    return f"{label}-{time.time_ns()}".encode()


def xor_bytes(data: bytes, keystream: bytes) -> bytes:
    """Repeating-key XOR; applying it twice with the same key is a no-op"""
    if not keystream:
        raise ValueError("Keystream must not be empty")
    size = len(keystream)
    return bytes(b ^ keystream[i % size] for i, b in enumerate(data))


def obfuscate(plaintext: str, keystream: bytes | None = None) -> ObfuscatedCredential:
    """
    Mask a credential for embedding

    Args:
        plaintext: Credential text
        keystream: Explicit keystream; a fresh time-derived one when omitted

    Returns:
        ObfuscatedCredential holding ciphertext and keystream
    """
    if keystream is None:
        keystream = generate_keystream()
    return ObfuscatedCredential(
        ciphertext=xor_bytes(plaintext.encode("utf-8"), keystream),
        keystream=keystream,
    )


def reveal(credential: ObfuscatedCredential) -> str:
    """
    Recover the credential text

    Raises:
        InvalidEmbeddedCredentialError: If the recovered bytes are not UTF-8
    """
    raw = xor_bytes(credential.ciphertext, credential.keystream)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEmbeddedCredentialError("Invalid API key", cause=e) from e
