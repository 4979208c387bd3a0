"""
SecureKV - Command Line

Main user interface for the encrypted key-value store.
Features:
- Save / read encrypted values (KEY VALUE / KEY)
- Multiple named stores (--store=NAME)
- Print a whole store in several formats (--print --f=...)
- List stores (--stores)
- Copy a value to the clipboard (--copy)
- Back up / restore the key file with Shamir shares
"""

import argparse
import getpass
import os
import sys
from pathlib import Path

from securekv import __version__, crypto
from securekv.errors import SecureKVError
from securekv.formatting import FORMATS, format_pair, format_pairs
from securekv.keys import load_or_create_keypair, save_keypair
from securekv.log import Logger
from securekv.recovery import format_recovery_kit, generate_key_shares, restore_keypair
from securekv.store import MISSING, list_store_names, open_store


# =============================================================================
# Configuration
# =============================================================================

DATA_DIR_ENV = "SECUREKV_HOME"
DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".securekv")
KEY_FILE_NAME = "securekv.key"
STORES_DIR_NAME = "data"
DEFAULT_STORE = "default"


def resolve_data_dir(override=None) -> Path:
    """--data-dir, then $SECUREKV_HOME, then ~/.securekv"""
    return Path(override or os.environ.get(DATA_DIR_ENV) or DEFAULT_DATA_DIR)


def key_file_path(data_dir: Path) -> Path:
    return data_dir / KEY_FILE_NAME


def stores_dir(data_dir: Path) -> Path:
    return data_dir / STORES_DIR_NAME


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skv",
        description="Encrypted local key-value store. Saves VALUE under KEY, or reads KEY.",
    )
    parser.add_argument("key", nargs="?", help="key to read or write")
    parser.add_argument("value", nargs="?", help="value to save (omit to read KEY)")
    parser.add_argument("--store", default=DEFAULT_STORE, metavar="STORE_NAME",
                        help="reads/writes value in a specific db store file")
    parser.add_argument("--debug", action="store_true",
                        help="toggles debug output (also --debug=true|false)")
    parser.add_argument("--f", "--format", dest="fmt", default="default", choices=FORMATS,
                        help="output format")
    parser.add_argument("--data-dir", default=None,
                        help=f"key and store directory (default: ${DATA_DIR_ENV} or ~/.securekv)")
    parser.add_argument("--print", dest="print_store", action="store_true",
                        help="prints all key-pairs saved in the store")
    parser.add_argument("--stores", action="store_true", help="prints all the stores created")
    parser.add_argument("--version", action="store_true", help="prints the version")
    parser.add_argument("--copy", action="store_true",
                        help="copy the value read to the clipboard instead of printing it")
    parser.add_argument("--backup-key", action="store_true",
                        help="write a Shamir recovery kit for the key file")
    parser.add_argument("--threshold", type=int, default=3, help="shares needed to restore (backup)")
    parser.add_argument("--shares", type=int, default=5, help="shares to create (backup)")
    parser.add_argument("--out", default="recovery_kit.txt", help="recovery kit file (backup)")
    parser.add_argument("--restore-key", action="store_true",
                        help="rebuild the key file from recovery shares")
    parser.add_argument("--share", action="append", default=[],
                        help="a recovery share (repeatable; prompts if omitted)")
    return parser


def expand_debug_flag(argv):
    """Rewrite --debug=true|false into the bare --debug switch (or drop it)."""
    expanded = []
    for arg in argv:
        name, sep, value = arg.partition("=")
        if name == "--debug" and sep and value.lower() in ("true", "false"):
            if value.lower() == "true":
                expanded.append("--debug")
            continue
        expanded.append(arg)
    return expanded


# =============================================================================
# Commands
# =============================================================================

def print_version(logger):
    logger.display(f"securekv version: {__version__}")


def cmd_read(args, keypair, data_dir, logger):
    with open_store(args.store, stores_dir(data_dir), logger) as store:
        value = store.get(args.key)

    if value == MISSING:
        logger.display(f"Key not found: '{args.key}' on store: '{args.store}'")
        return 1

    plaintext = crypto.decrypt_from_text(keypair.private, value)
    if args.copy:
        try:
            import pyperclip
        except ImportError:
            logger.error("ERROR: pyperclip not installed. Run: pip install pyperclip")
            return 1
        try:
            pyperclip.copy(plaintext)
        except pyperclip.PyperclipException as e:
            logger.error(f"ERROR: clipboard unavailable ({e})")
            return 1
        logger.display(f"✓ Value for '{args.key}' copied to clipboard!")
    else:
        logger.display(format_pair(args.key, plaintext, args.fmt))
    return 0


def cmd_insert(args, keypair, data_dir, logger):
    with open_store(args.store, stores_dir(data_dir), logger) as store:
        logger.debug(f"using store: '{store.name}' ({len(store)} entries)")
        store.insert(args.key, crypto.encrypt_to_text(keypair.public, args.value))
    logger.display(f"Saved '{args.key}' on store: '{args.store}'")
    return 0


def cmd_print_store(args, keypair, data_dir, logger):
    logger.display(f"Displaying Store '{args.store}' with formatting '{args.fmt}'")
    with open_store(args.store, stores_dir(data_dir), logger) as store:
        items = store.snapshot()

    decrypted = {
        key: crypto.decrypt_from_text(keypair.private, value)
        for key, value in items.items()
    }
    if decrypted:
        logger.display(format_pairs(decrypted, args.fmt))
    else:
        logger.display("(empty)")
    return 0


def cmd_stores(args, data_dir, logger):
    names = list_store_names(stores_dir(data_dir), logger)
    if not names:
        logger.display("No stores.")
    for name in names:
        logger.display(f"Store Name: {name}")
    return 0


def cmd_backup_key(args, keypair, logger):
    try:
        shares = generate_key_shares(keypair, args.threshold, args.shares)
    except ValueError as e:
        logger.error(f"ERROR: {e}")
        return 1
    kit = format_recovery_kit(shares, keypair, args.threshold)
    with open(args.out, "w", encoding="utf-8") as f:
        f.write(kit)
    logger.display(f"✓ Recovery kit saved to: {args.out}")
    return 0


def cmd_restore_key(args, data_dir, logger):
    key_path = key_file_path(data_dir)
    if key_path.exists():
        logger.error(f"ERROR: key file already exists at {key_path}; refusing to replace it")
        return 1

    shares = [" ".join(s.split()) for s in args.share]
    if not shares:
        logger.display("Enter recovery shares (one per line). Empty line when done.\n")
        while True:
            share_input = getpass.getpass(f"Share {len(shares) + 1}: ").strip()
            if not share_input:
                break
            shares.append(" ".join(share_input.split()))

    if len(shares) < 2:
        logger.error("ERROR: Need at least 2 shares")
        return 1

    keypair = restore_keypair(shares)
    save_keypair(key_path, keypair, logger=logger)
    logger.display(f"✓ Key file restored to {key_path} (fingerprint {keypair.fingerprint})")
    return 0


# =============================================================================
# Entry Point
# =============================================================================

def main(argv=None) -> int:
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(expand_debug_flag(argv))

    logger = Logger(debug=args.debug)
    data_dir = resolve_data_dir(args.data_dir)
    logger.debug(f"data directory: {data_dir}")

    try:
        if args.version:
            print_version(logger)
            return 0
        if args.stores:
            return cmd_stores(args, data_dir, logger)
        if args.restore_key:
            return cmd_restore_key(args, data_dir, logger)
        if not (args.backup_key or args.print_store or args.key):
            print_version(logger)
            parser.print_help()
            return 0

        keypair = load_or_create_keypair(key_file_path(data_dir), logger)

        if args.backup_key:
            return cmd_backup_key(args, keypair, logger)
        if args.print_store:
            return cmd_print_store(args, keypair, data_dir, logger)
        if args.value is None:
            return cmd_read(args, keypair, data_dir, logger)
        return cmd_insert(args, keypair, data_dir, logger)
    except SecureKVError as e:
        logger.error(f"ERROR: {e}")
        return 1
    except OSError as e:
        logger.error(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(130)
