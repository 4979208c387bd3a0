"""
SecureKV - Attack Demonstration

Run: python attack_demo.py

What it shows (and why attacks fail):
1) A different key pair cannot decrypt stored values.
2) Ciphertext tampering in the store file is detected by Poly1305.
3) Tag tampering is detected.
4) Swapping the ephemeral public key changes the shared secret -> detected.
5) Setting the ephemeral key's ignored high bit is rejected as non-canonical.
6) Truncated envelopes are rejected before any crypto runs.
7) A corrupted store file refuses to load (no silent partial load).
8) Key recovery rejects insufficient Shamir shares.
"""

import tempfile
from pathlib import Path

from securekv import crypto
from securekv.errors import AuthenticationFailed, CorruptStoreFile, MalformedEnvelope, RecoveryError
from securekv.keys import generate_key_pair, load_or_create_keypair
from securekv.recovery import generate_key_shares, restore_keypair
from securekv.store import open_store, store_path


LINE = "=" * 70


def section(title: str):
    print(f"\n{LINE}\n{title}\n{LINE}")


def tamper_stored_value(path: Path, key: str, index: int, mask: int = 1) -> None:
    """Flip bits of the envelope stored under key, directly in the file."""
    lines = path.read_text(encoding="utf-8").splitlines()
    for i, line in enumerate(lines):
        k, _, value = line.partition("\t")
        if k == key:
            raw = bytearray(crypto.decode_hex(value))
            raw[index] ^= mask
            lines[i] = f"{k}\t{crypto.encode_hex(bytes(raw))}"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def expect_failure(label: str, func, errors) -> bool:
    try:
        func()
    except errors as e:
        print(f"Expected failure: {label} ({type(e).__name__}: {e})")
        return True
    print(f"Unexpected: {label} was NOT detected")
    return False


def read_value(data_dir: Path, keypair, key: str) -> str:
    with open_store("demo", data_dir, None) as store:
        return crypto.decrypt_from_text(keypair.private, store.get(key))


def main() -> bool:
    results = []
    with tempfile.TemporaryDirectory() as tmp:
        data_dir = Path(tmp)
        keypair = load_or_create_keypair(data_dir / "securekv.key")

        # Store a few values
        with open_store("demo", data_dir) as store:
            for key in ("github", "email", "bank", "wifi", "vpn"):
                store.insert(key, crypto.encrypt_to_text(keypair.public, f"{key}-super-secret"))
        path = store_path("demo", data_dir)
        print(f"Stored 5 encrypted values in {path}")

        # 1) Wrong key pair
        section("Attack 1: Decrypt with a different key pair")
        intruder = generate_key_pair()
        results.append(expect_failure(
            "foreign private key", lambda: read_value(data_dir, intruder, "github"), AuthenticationFailed))

        # 2) Ciphertext tampering
        section("Attack 2: Ciphertext tampering (flip a bit after the header)")
        tamper_stored_value(path, "email", crypto.HEADER_SIZE)
        results.append(expect_failure(
            "ciphertext bit flip", lambda: read_value(data_dir, keypair, "email"), AuthenticationFailed))

        # 3) Tag tampering
        section("Attack 3: Authentication tag tampering")
        tamper_stored_value(path, "bank", 40)
        results.append(expect_failure(
            "tag bit flip", lambda: read_value(data_dir, keypair, "bank"), AuthenticationFailed))

        # 4) Ephemeral key tampering
        section("Attack 4: Ephemeral public key tampering")
        tamper_stored_value(path, "wifi", 3)
        results.append(expect_failure(
            "ephemeral key bit flip", lambda: read_value(data_dir, keypair, "wifi"), AuthenticationFailed))

        # 5) Non-canonical ephemeral key
        section("Attack 5: Ephemeral key high bit (ignored by X25519 itself)")
        tamper_stored_value(path, "vpn", crypto.KEY_SIZE - 1, 0x80)
        results.append(expect_failure(
            "ephemeral key high bit", lambda: read_value(data_dir, keypair, "vpn"), AuthenticationFailed))

        # Untouched value still reads fine
        print(f"\nUntouched value still decrypts: {read_value(data_dir, keypair, 'github')!r}")

        # 6) Truncation
        section("Attack 6: Truncated envelope")
        short = crypto.encrypt(keypair.public, b"x")[:40]
        results.append(expect_failure(
            "truncated envelope", lambda: crypto.decrypt(keypair.private, short), MalformedEnvelope))

        # 7) Corrupt store file
        section("Attack 7: Corrupted store file")
        with path.open("a", encoding="utf-8") as f:
            f.write("this line has no separator\n")
        results.append(expect_failure(
            "store file corruption", lambda: read_value(data_dir, keypair, "github"), CorruptStoreFile))

        # 8) Shamir recovery with insufficient shares
        section("Attack 8: Key recovery with insufficient shares")
        shares = generate_key_shares(keypair, k=3, n=5)
        results.append(expect_failure(
            "insufficient shares", lambda: restore_keypair([shares[0], shares[1]]), RecoveryError))

    ok = all(results)
    if ok:
        print("\nDemo complete. All showcased attacks failed as expected.")
    else:
        print("\nDemo complete. SOME ATTACKS WERE NOT DETECTED.")
    return ok


if __name__ == "__main__":
    import sys
    sys.exit(0 if main() else 1)
