"""Table cache file format: versioned JSON, validated on read, replaced atomically on write.

Layout::

    {"format": "tablecache", "version": 1, "tables": {"\"main\".\"users\"": true}}

Only load cache files from trusted local paths.
"""

import os
import stat
import tempfile
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from tablecache.errors import CacheFileNotFoundError, DeserializationError

FORMAT_NAME = "tablecache"
FORMAT_VERSION = 1

# Process umask, applied to newly created cache files.
_UMASK = os.umask(0)
os.umask(_UMASK)


class CacheFile(BaseModel):
    """On-disk table existence cache."""

    model_config = ConfigDict(extra="forbid")

    format: Literal["tablecache"]
    version: Literal[1]
    tables: dict[str, StrictBool]


def _file_mode(path: Path) -> int:
    """Mode for a new cache file: keep the mode of the file it replaces, else 0666 minus umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return 0o666 & ~_UMASK


def read_cache_file(path: str | os.PathLike) -> dict[str, bool]:
    """Read and validate a cache file, returning its key -> exists mapping."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        raise CacheFileNotFoundError(path) from None

    try:
        parsed = CacheFile.model_validate_json(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        logger.warning("Rejected table cache file {}: not UTF-8", path)
        raise DeserializationError(f"Table cache file {path} is not valid UTF-8") from e
    except ValidationError as e:
        logger.warning("Rejected table cache file {}: {} error(s)", path, e.error_count())
        raise DeserializationError(f"Invalid table cache file {path}: {e}") from e

    return dict(parsed.tables)


def write_cache_file(path: str | os.PathLike, tables: dict[str, bool], overwrite: bool = True) -> bool:
    """Write a cache file atomically.

    With overwrite, any existing file at path is replaced. Without it the
    finished file is hard-linked into place, which fails if path already
    exists; nothing is written and False is returned.
    """
    path = Path(path)
    payload = CacheFile(
        format=FORMAT_NAME,
        version=FORMAT_VERSION,
        tables=dict(sorted(tables.items())),
    )
    data = payload.model_dump_json(indent=2)

    tmp = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp.name, _file_mode(path))
        if overwrite:
            os.replace(tmp.name, path)
            return True
        try:
            os.link(tmp.name, path)
        except FileExistsError:
            return False
        finally:
            Path(tmp.name).unlink(missing_ok=True)
        return True
    except BaseException:
        Path(tmp.name).unlink(missing_ok=True)
        raise
