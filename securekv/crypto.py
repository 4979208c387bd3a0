"""
SecureKV - Cryptography Module

This single file contains ALL cryptographic operations for the key-value store.

Security Architecture (sealed-box style envelope):
    1. Owner has a long-term X25519 key pair (see keys.py)
    2. For EVERY value: generate a fresh ephemeral X25519 key pair
    3. shared_secret = X25519(ephemeral_private, owner_public)
    4. shared_secret is used directly as a ChaCha20-Poly1305 key
       (64-bit nonce variant, nonce = 8 zero bytes, no associated data)
    5. Envelope = ephemeral_public (32) || tag (16) || ciphertext (N)

Why a zero nonce is safe here:
    - The symmetric key is different for every encryption because the
      ephemeral key pair is different for every encryption
    - A (key, nonce) pair is therefore never used twice
    - This only holds if encrypt() generates the ephemeral scalar itself,
      every call, and never caches the derived key

Libraries:
    - cryptography: X25519 key agreement
    - PyNaCl (libsodium): ChaCha20-Poly1305 with the original 8-byte nonce
"""

import os
import binascii

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import x25519
from nacl import bindings
from nacl.exceptions import CryptoError as NaClCryptoError

from .errors import (
    AuthenticationFailed,
    EncodingError,
    KeyFormatError,
    MalformedEnvelope,
    RngUnavailable,
)


# =============================================================================
# Configuration
# =============================================================================

KEY_SIZE = 32                                   # X25519 scalar / point size
TAG_SIZE = bindings.crypto_aead_chacha20poly1305_ABYTES       # 16
NONCE_SIZE = bindings.crypto_aead_chacha20poly1305_NPUBBYTES  # 8
HEADER_SIZE = KEY_SIZE + TAG_SIZE               # 48

ZERO_NONCE = b"\x00" * NONCE_SIZE

FIELD_PRIME = 2 ** 255 - 19                     # u-coordinates are reduced mod p


# =============================================================================
# Curve25519 Helpers
# =============================================================================

def random_scalar() -> bytes:
    """
    Generate a 32-byte private scalar from the OS random source.

    There is NO fallback: if os.urandom() cannot deliver, we refuse to
    produce key material rather than use something weaker.

    Raises:
        RngUnavailable: OS random source failed
    """
    try:
        return os.urandom(KEY_SIZE)
    except (NotImplementedError, OSError) as e:
        raise RngUnavailable(f"Secure random source unavailable: {e}") from e


def _raw_public(private: x25519.X25519PrivateKey) -> bytes:
    return private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def derive_public_key(private_key: bytes) -> bytes:
    """Base-point scalar multiplication: public = X25519(private, 9)."""
    if len(private_key) != KEY_SIZE:
        raise KeyFormatError(f"Private key must be {KEY_SIZE} bytes, got {len(private_key)}")
    return _raw_public(x25519.X25519PrivateKey.from_private_bytes(private_key))


def _load_public(public_key: bytes) -> x25519.X25519PublicKey:
    if len(public_key) != KEY_SIZE:
        raise KeyFormatError(f"Public key must be {KEY_SIZE} bytes, got {len(public_key)}")
    return x25519.X25519PublicKey.from_public_bytes(public_key)


def _is_canonical_point(public_key: bytes) -> bool:
    """True if public_key is the one encoding X25519 would produce for its u."""
    return int.from_bytes(public_key, "little") < FIELD_PRIME


# =============================================================================
# Envelope Encryption
# =============================================================================

def encrypt(public_key: bytes, plaintext: bytes) -> bytes:
    """
    Encrypt a value to the owner's public key.

    Every call:
    - generates a brand-new ephemeral scalar (never reused, never cached)
    - derives a brand-new symmetric key from it
    so the fixed all-zero nonce never repeats under the same key.

    Args:
        public_key: Recipient (store owner) X25519 public key, 32 bytes
        plaintext: Data to encrypt

    Returns:
        Envelope bytes: ephemeral_public (32) || tag (16) || ciphertext (N)

    Raises:
        RngUnavailable: OS random source failed
        KeyFormatError: public_key is not a usable X25519 point
    """
    recipient = _load_public(public_key)

    # Fresh ephemeral key pair (MUST happen here, inside encrypt)
    ephemeral = x25519.X25519PrivateKey.from_private_bytes(random_scalar())
    ephemeral_public = _raw_public(ephemeral)

    try:
        symmetric_key = ephemeral.exchange(recipient)
    except ValueError as e:
        # Low-order point: the shared secret would be all zeros
        raise KeyFormatError(f"Public key rejected by key agreement: {e}") from e

    sealed = bindings.crypto_aead_chacha20poly1305_encrypt(
        plaintext, None, ZERO_NONCE, symmetric_key
    )

    # libsodium returns ciphertext || tag; the envelope stores tag first
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return ephemeral_public + tag + ciphertext


def decrypt(private_key: bytes, envelope: bytes) -> bytes:
    """
    Decrypt an envelope with the owner's private key.

    Tampering with ANY byte is detected:
    - ciphertext or tag changed -> Poly1305 tag mismatch
    - ephemeral key changed -> different shared secret -> tag mismatch
    - non-canonical ephemeral key (top bit set, or u >= p) -> rejected,
      since X25519 would otherwise map it onto the original key

    Args:
        private_key: Owner's X25519 private key, 32 bytes
        envelope: Bytes produced by encrypt()

    Returns:
        Original plaintext bytes (never partial)

    Raises:
        MalformedEnvelope: Shorter than the 48-byte header
        AuthenticationFailed: Wrong key or tampered envelope
    """
    if len(envelope) < HEADER_SIZE:
        raise MalformedEnvelope(
            f"Envelope is {len(envelope)} bytes, need at least {HEADER_SIZE}"
        )

    ephemeral_public = envelope[:KEY_SIZE]
    tag = envelope[KEY_SIZE:HEADER_SIZE]
    ciphertext = envelope[HEADER_SIZE:]

    if not _is_canonical_point(ephemeral_public):
        raise AuthenticationFailed("Envelope failed authentication (non-canonical ephemeral key)")

    if len(private_key) != KEY_SIZE:
        raise KeyFormatError(f"Private key must be {KEY_SIZE} bytes, got {len(private_key)}")
    owner = x25519.X25519PrivateKey.from_private_bytes(private_key)
    try:
        symmetric_key = owner.exchange(x25519.X25519PublicKey.from_public_bytes(ephemeral_public))
    except ValueError as e:
        raise AuthenticationFailed("Envelope failed authentication (invalid ephemeral key)") from e

    try:
        return bindings.crypto_aead_chacha20poly1305_decrypt(
            ciphertext + tag, None, ZERO_NONCE, symmetric_key
        )
    except NaClCryptoError as e:
        raise AuthenticationFailed("Envelope failed authentication (tampered or wrong key)") from e


# =============================================================================
# Text Transport (hex)
# =============================================================================

def encode_hex(data: bytes) -> str:
    """Lowercase hex, two characters per byte."""
    return data.hex()


def decode_hex(text: str) -> bytes:
    """
    Strict hex decoding.

    Unlike bytes.fromhex(), whitespace is NOT accepted: store and key
    files must contain exactly what encode_hex() wrote.

    Raises:
        EncodingError: Odd length, non-hex or non-ASCII characters
    """
    try:
        return binascii.unhexlify(text.encode("ascii"))
    except (UnicodeEncodeError, binascii.Error, ValueError) as e:
        raise EncodingError(f"Invalid hex string: {e}") from e


def encrypt_to_text(public_key: bytes, text: str) -> str:
    """Encrypt a UTF-8 string and return the envelope as hex."""
    return encode_hex(encrypt(public_key, text.encode("utf-8")))


def decrypt_from_text(private_key: bytes, text: str) -> str:
    """
    Decrypt a hex envelope back to a string.

    Raises:
        EncodingError: Bad hex, or plaintext is not UTF-8
        MalformedEnvelope, AuthenticationFailed: see decrypt()
    """
    plaintext = decrypt(private_key, decode_hex(text))
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Decrypted value is not valid UTF-8: {e}") from e
