import logging
from typing import Callable
from .naming import split_name

logger = logging.getLogger("submission.dedup")

MAX_DEDUP_ATTEMPTS = 100


def join_path(folder: str, file_name: str) -> str:
    folder = folder.strip().strip("/")
    return f"{folder}/{file_name}" if folder else file_name


def resolve_unique_path(
    exists: Callable[[str], bool],
    folder: str,
    file_name: str,
    max_attempts: int = MAX_DEDUP_ATTEMPTS,
) -> str:
    """
    Finds a free remote path for `file_name` under `folder`.

    Tries `name.ext`, then `name-1.ext`, `name-2.ext`, ... one existence check
    at a time. After `max_attempts` occupied suffixes it gives up and returns
    the unsuffixed path, which the upload will overwrite.
    """
    base = join_path(folder, file_name)
    if not exists(base):
        return base

    _, stem, ext = split_name(file_name)
    for n in range(1, max_attempts + 1):
        candidate = join_path(folder, f"{stem}-{n}{ext}")
        if not exists(candidate):
            logger.info("Resolved %s -> %s", base, candidate)
            return candidate

    logger.warning("No free name for %s after %d attempts; overwriting", base, max_attempts)
    return base
