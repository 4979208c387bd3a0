"""
SecureKV - Encrypted Local Key-Value Store

A small, single-user key-value store where every value is encrypted to
your own public key before it touches the disk.

Key Features:
- Per-value envelopes: fresh ephemeral X25519 key + ChaCha20-Poly1305
- Tamper detection: flipping any byte of a stored value is caught
- Plain files: one tab-separated text file per store
- Key backup: k-of-n Shamir shares of the private key

Components:
- crypto.py: Envelope encryption/decryption (one file!)
- keys.py: Key pair generation and key file handling
- store.py: Flat-file store (load on open, flush on close)
- recovery.py: Shamir Secret Sharing backup of the private key
- formatting.py: default/short/csv/json/table output
- log.py: Two-level console logger

Usage:
    python skv_main.py github s3cret               # Save a value
    python skv_main.py github                      # Read it back
    python skv_main.py work-pc pa55 --store=work   # Use another store
    python skv_main.py --print --f=table           # Show the whole store
    python skv_main.py --stores                    # List stores
"""

__version__ = "0.3.0"
__author__ = "SecureKV Team"
