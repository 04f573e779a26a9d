import logging
import os
from collections.abc import Callable
from pathlib import Path

from .constants import APP_NAME, REPOSITORY_DELIMITER

logger = logging.getLogger(APP_NAME)


def parse_repository_list(repositories: str) -> list[str]:
    """Splits a delimited repository list into its candidate paths.

    Args:
        repositories (str): Candidate directories separated by `;`.

    Returns:
        list[str]: The non-empty, stripped candidates in their original order.
    """
    if not repositories:
        return []
    return [
        part.strip()
        for part in repositories.split(REPOSITORY_DELIMITER)
        if part.strip()
    ]


def select_active(
    repositories: str,
    exists: Callable[[str], bool] = os.path.exists,
) -> Path | None:
    """Picks the first candidate directory that contains a `.git` marker.

    Args:
        repositories (str): Candidate directories separated by `;`.
        exists (Callable[[str], bool], optional): Filesystem existence check.
                                                  Defaults to `os.path.exists`.

    Returns:
        Path | None: The active repository as an absolute path, or None if no
                     candidate qualifies.
    """
    candidates = parse_repository_list(repositories)
    if not candidates:
        logger.warning("No repositories configured.")
        return None

    for candidate in candidates:
        marker = os.path.join(candidate, ".git")
        if exists(marker):
            logger.info(f"ACTIVE: {candidate}")
            return Path(os.path.abspath(candidate))
        logger.info(f"SKIPPED {candidate}: no .git found")

    logger.warning(f"No git repository among {len(candidates)} candidate(s).")
    return None
