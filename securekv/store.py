"""
SecureKV - Flat-File Store Module

One store = one file: <base_directory>/<store_name>.db

File format (one pair per line):
    <key>\\t<hex envelope>\\n

Lifecycle:
    open   -> whole file read and parsed into a dict
    insert -> dict only (nothing touches the disk)
    close  -> whole dict written back in ONE write call

Values are opaque text here. The store never encrypts or decrypts;
the caller passes values through crypto.py on the way in and out.

Known limitations:
    - No locking: two processes on one store -> last close wins
    - get() returns "" for a missing key, same as an empty value
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Union

from .errors import CorruptStoreFile, InvalidKey, StoreClosedError, StoreFlushError


STORE_SUFFIX = ".db"
SEPARATOR = "\t"

# Returned by get() for a key that is not in the store
MISSING = ""


def store_path(store_name: str, base_directory: Union[str, Path]) -> Path:
    """Backing file for a store name."""
    return Path(base_directory) / f"{store_name}{STORE_SUFFIX}"


def parse_store_file(path: Path, contents: str) -> Dict[str, str]:
    """
    Parse store file contents into a dict.

    All-or-nothing: one bad line and the whole load fails.

    Raises:
        CorruptStoreFile: a line has no tab separator
    """
    lines = contents.split("\n")
    if lines[-1] == "":
        lines.pop()

    data = {}
    for number, line in enumerate(lines, 1):
        if line.endswith("\r"):
            line = line[:-1]
        key, sep, value = line.partition(SEPARATOR)
        if not sep:
            raise CorruptStoreFile(path, number)
        data[key] = value
    return data


def format_store_file(data: Dict[str, str]) -> str:
    return "".join(f"{key}{SEPARATOR}{value}\n" for key, value in data.items())


# =============================================================================
# STORE CLASS
# =============================================================================

class Store:
    """
    In-memory view of one store file, flushed on close.

    Usage:
        with open_store("default", data_dir) as store:
            store.insert("github", crypto.encrypt_to_text(keypair.public, "s3cret"))
            value = store.get("github")
        # file rewritten here, even if the block raised
    """

    def __init__(self, name: str, path: Path, data: Dict[str, str], logger=None):
        self.name = name
        self.path = path
        self._data = data
        self._logger = logger
        self.closed = False

    @classmethod
    def open(cls, store_name: str, base_directory: Union[str, Path], logger=None) -> "Store":
        """
        Load a store, creating an empty one on first use.

        Raises:
            CorruptStoreFile: existing file can't be parsed
            OSError: file can't be read or created
        """
        path = store_path(store_name, base_directory)
        if logger is not None:
            logger.debug(f"Store Path: {path}")

        if path.exists():
            try:
                contents = path.read_bytes().decode("utf-8")
            except UnicodeDecodeError as e:
                raise CorruptStoreFile(path, None, f"not valid UTF-8: {e}") from e
            data = parse_store_file(path, contents)
            if logger is not None:
                logger.debug(f"loaded {len(data)} entries from store '{store_name}'")
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
            data = {}
            if logger is not None:
                logger.debug(f"created new store '{store_name}'")

        return cls(store_name, path, data, logger)

    def insert(self, key: str, value: str) -> None:
        """
        Set key to value in memory (last write wins).

        Raises:
            InvalidKey: key/value would break the line format
        """
        self._require_open()
        if SEPARATOR in key or "\n" in key or "\r" in key:
            raise InvalidKey(f"Key may not contain tab or newline characters: {key!r}")
        if "\n" in value or "\r" in value:
            raise InvalidKey(f"Value for {key!r} may not contain newline characters")
        self._data[key] = value

    def get(self, key: str) -> str:
        """Stored value, or MISSING ("") if the key is absent."""
        self._require_open()
        return self._data.get(key, MISSING)

    def snapshot(self) -> Dict[str, str]:
        """Copy of every key -> value pair."""
        self._require_open()
        return dict(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def close(self) -> None:
        """
        Write the whole store back to its file, once.

        Closing twice is harmless (second call does nothing).

        Raises:
            StoreFlushError: the write failed; changes are lost
        """
        if self.closed:
            return
        self.closed = True

        if self._logger is not None:
            self._logger.debug(f"flushing db: {self.name}")
        contents = format_store_file(self._data)
        try:
            with open(self.path, "w", encoding="utf-8", newline="") as f:
                f.write(contents)
        except OSError as e:
            if self._logger is not None:
                self._logger.error(
                    f"ERROR: could not write store '{self.name}' to {self.path}: {e} "
                    f"({len(self._data)} entries NOT saved)"
                )
            raise StoreFlushError(f"Failed to write store '{self.name}' to {self.path}: {e}") from e

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.close()
        else:
            # Already unwinding: flush, but don't hide the original error
            try:
                self.close()
            except StoreFlushError:
                pass  # logged by close()
        return False

    def _require_open(self) -> None:
        if self.closed:
            raise StoreClosedError(f"Store '{self.name}' is closed")


@contextmanager
def open_store(store_name: str, base_directory: Union[str, Path], logger=None) -> Iterator[Store]:
    """Open a store and guarantee close() on every exit path."""
    store = Store.open(store_name, base_directory, logger)
    with store:
        yield store


def list_store_names(base_directory: Union[str, Path], logger=None) -> List[str]:
    """
    Names of the entries in the data directory, as-is (e.g. "default.db").

    This is a directory listing; nothing is opened or parsed.
    """
    base = Path(base_directory)
    if logger is not None:
        logger.debug(f"reading stores in: {base}")
    if not base.is_dir():
        return []
    return sorted(entry.name for entry in base.iterdir())
