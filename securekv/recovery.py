"""
SecureKV - Key Backup Module (Shamir Secret Sharing)

The private key is the only way to read a store. Lose the key file and
every value is gone. This module splits the private key into k-of-n
SLIP-0039 mnemonic shares:
- Any k shares rebuild the key pair
- Fewer than k shares reveal NOTHING
- The public key is recomputed from the private key, so only the
  private key goes into the shares
"""

from typing import List

from shamir_mnemonic import shamir

from . import crypto
from .errors import RecoveryError
from .keys import KeyPair


def generate_key_shares(keypair: KeyPair, k: int, n: int) -> List[str]:
    """
    Split the private key into n shares (need k to restore).

    Args:
        keypair: Key pair to back up
        k: Threshold (minimum shares needed)
        n: Total number of shares to create

    Returns:
        n mnemonic strings (words separated by spaces)
    """
    if k > n:
        raise ValueError(f"k ({k}) cannot be greater than n ({n})")

    if k < 2:
        raise ValueError("k must be at least 2")

    if n > 16:
        raise ValueError("n cannot exceed 16 (SLIP-0039 limit)")

    # One group, k-of-n members
    groups = shamir.generate_mnemonics(
        group_threshold=1,
        groups=[(k, n)],
        master_secret=keypair.private,
    )
    return groups[0]


def restore_keypair(shares: List[str]) -> KeyPair:
    """
    Rebuild the key pair from k shares.

    Raises:
        RecoveryError: shares invalid, mismatched or too few
    """
    try:
        private = shamir.combine_mnemonics(shares)
    except Exception as e:
        raise RecoveryError(f"Failed to combine shares: {e}") from e

    if len(private) != crypto.KEY_SIZE:
        raise RecoveryError(
            f"Recovered secret is {len(private)} bytes, expected a {crypto.KEY_SIZE}-byte private key"
        )
    return KeyPair(public=crypto.derive_public_key(private), private=private)


def format_recovery_kit(shares: List[str], keypair: KeyPair, k: int) -> str:
    """
    Format shares for printing on paper.

    Returns:
        Printable text
    """
    output = []
    output.append("=" * 70)
    output.append("SecureKV KEY RECOVERY KIT")
    output.append("=" * 70)
    output.append(f"\nKey fingerprint: {keypair.fingerprint}")
    output.append(f"Threshold: Need {k} of {len(shares)} shares to recover")
    output.append("\nIMPORTANT:")
    output.append("- Store shares in separate secure locations")
    output.append(f"- Any {k} shares can rebuild your key file if it is lost")
    output.append(f"- Losing up to {len(shares) - k} shares is okay")
    output.append("- NEVER store all shares together!\n")
    output.append("=" * 70)

    for i, share in enumerate(shares, 1):
        output.append(f"\n\nSHARE {i} of {len(shares)}")
        output.append("-" * 70)
        output.append(share)
        output.append("\n" + "-" * 70)

    output.append("\n\nTo recover:")
    output.append("1. Run: python skv_main.py --restore-key")
    output.append(f"2. Enter any {k} shares when prompted\n")

    return "\n".join(output)
