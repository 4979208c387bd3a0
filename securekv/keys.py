"""
SecureKV - Key Pair Module

Owns the store owner's long-term X25519 key pair:
- generation (once, from the OS random source)
- the on-disk record: "<public hex>\t<private hex>" on one line
- loading it back on every later run

The key pair is write-once: there is no update, rotation or delete.
Losing the key file means losing every stored value, so see
recovery.py for a Shamir backup.
"""

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from . import crypto
from .errors import EncodingError, KeyFormatError


RECORD_SEPARATOR = "\t"


@dataclass(frozen=True)
class KeyPair:
    """Immutable key pair value. Pass it explicitly; there is no global key."""
    public: bytes
    private: bytes = field(repr=False)

    @property
    def fingerprint(self) -> str:
        """Short hex identifier of the public key (safe to print)."""
        return hashlib.sha256(self.public).hexdigest()[:16]


def generate_key_pair() -> KeyPair:
    """
    Generate a new key pair.

    private = 32 random bytes (os.urandom)
    public = base-point multiplication of private

    Raises:
        RngUnavailable: OS random source failed
    """
    private = crypto.random_scalar()
    return KeyPair(public=crypto.derive_public_key(private), private=private)


# =============================================================================
# On-disk Record
# =============================================================================

def format_keypair_record(keypair: KeyPair) -> str:
    return f"{crypto.encode_hex(keypair.public)}{RECORD_SEPARATOR}{crypto.encode_hex(keypair.private)}"


def parse_keypair_record(text: str) -> KeyPair:
    """
    Parse "<public hex>\\t<private hex>".

    A single trailing newline is tolerated (editors like to add one).

    Raises:
        KeyFormatError: wrong field count, bad hex, wrong length, or the
            public key does not belong to the private key
    """
    if text.endswith("\r\n"):
        text = text[:-2]
    elif text.endswith("\n"):
        text = text[:-1]

    fields = text.split(RECORD_SEPARATOR)
    if len(fields) != 2:
        raise KeyFormatError(
            f"Key file must contain exactly 2 tab-separated fields, found {len(fields)}"
        )

    decoded = []
    for name, value in zip(("public", "private"), fields):
        try:
            raw = crypto.decode_hex(value)
        except EncodingError as e:
            raise KeyFormatError(f"Invalid {name} key hex: {e}") from e
        if len(raw) != crypto.KEY_SIZE:
            raise KeyFormatError(
                f"Invalid {name} key length: {len(raw)} bytes (expected {crypto.KEY_SIZE})"
            )
        decoded.append(raw)

    public, private = decoded
    if crypto.derive_public_key(private) != public:
        raise KeyFormatError("Public key does not match private key")

    return KeyPair(public=public, private=private)


# =============================================================================
# Load / Create
# =============================================================================

def save_keypair(path: Union[str, Path], keypair: KeyPair, overwrite: bool = False,
                 logger=None) -> None:
    """
    Write the key record (full overwrite, no temp file).

    Raises:
        FileExistsError: path exists and overwrite is False
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Key file already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_keypair_record(keypair), encoding="ascii")
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        _debug(logger, f"could not restrict key file permissions on {path}: {e}")


def load_or_create_keypair(path: Union[str, Path], logger=None) -> KeyPair:
    """
    Load the key pair from path, or generate and persist a new one.

    An existing file is NEVER replaced: a malformed file is an error,
    not a reason to generate new keys (that would orphan every value).

    Args:
        path: Key file location (parent directories are created)
        logger: Optional Logger for debug output

    Returns:
        KeyPair

    Raises:
        KeyFormatError: Existing file is malformed
        RngUnavailable: Generation needed but no secure randomness
    """
    path = Path(path)

    if path.exists():
        _debug(logger, "key file already exists")
        keypair = parse_keypair_record(path.read_text(encoding="ascii", errors="replace"))
        _debug(logger, f"Public key: {crypto.encode_hex(keypair.public)}")
        return keypair

    _debug(logger, "key file doesn't exist, creating...")
    keypair = generate_key_pair()
    save_keypair(path, keypair, logger=logger)
    _debug(logger, f"Public key: {crypto.encode_hex(keypair.public)}")
    _debug(logger, f"Key file written: {path}")
    return keypair


def _debug(logger: Optional[object], message: str) -> None:
    if logger is not None:
        logger.debug(message)
