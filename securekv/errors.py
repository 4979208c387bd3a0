"""
SecureKV - Error Types

Every failure the core can report has its own exception class so the
command line (or any other caller) can print a specific message.

Hierarchy:
    SecureKVError
    ├── KeyFormatError        key file or public key is unusable
    ├── EncodingError         bad hex / bad UTF-8
    ├── RngUnavailable        OS random source failed
    ├── CryptoError
    │   ├── MalformedEnvelope     too short to hold the header
    │   └── AuthenticationFailed  tag did not verify
    ├── StoreError
    │   ├── CorruptStoreFile
    │   ├── InvalidKey
    │   ├── StoreClosedError
    │   └── StoreFlushError
    └── RecoveryError         Shamir shares could not be combined
"""


class SecureKVError(Exception):
    """Base class for all SecureKV errors."""


class KeyFormatError(SecureKVError):
    """Key-pair file (or a public key) is malformed."""


class EncodingError(SecureKVError):
    """Hex or UTF-8 decoding failed."""


class RngUnavailable(SecureKVError):
    """The operating system's secure random source is unavailable."""


class CryptoError(SecureKVError):
    """Base class for envelope decryption failures."""


class MalformedEnvelope(CryptoError):
    """Envelope is shorter than ephemeral key + tag."""


class AuthenticationFailed(CryptoError):
    """Authentication tag did not verify (wrong key or tampered envelope)."""


class StoreError(SecureKVError):
    """Base class for flat-file store errors."""


class CorruptStoreFile(StoreError):
    """A store file line could not be parsed."""

    def __init__(self, path, line_number, reason="missing tab separator"):
        self.path = path
        self.line_number = line_number
        self.reason = reason
        if line_number is None:
            super().__init__(f"Corrupt store file {path} ({reason})")
        else:
            super().__init__(f"Corrupt store file {path} (line {line_number}: {reason})")


class InvalidKey(StoreError):
    """Key or value cannot be represented in the line-based store format."""


class StoreClosedError(StoreError):
    """Operation attempted on a store that was already closed."""


class StoreFlushError(StoreError):
    """Writing the store back to disk failed; in-memory changes are lost."""


class RecoveryError(SecureKVError):
    """Recovery shares are invalid or insufficient."""
