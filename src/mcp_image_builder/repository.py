"""
Detection of the MCP servers repository checkout.
"""

import logging
from pathlib import Path
from typing import Callable

from .exceptions import RepositoryNotConfirmedError, ServerNotFoundError

logger = logging.getLogger(__name__)

MARKER_FILE = "CONTRIBUTING.md"
SERVERS_DIR = "src"


def looks_like_servers_repo(path: Path) -> bool:
    """True when `path` has the layout of modelcontextprotocol/servers"""
    return (path / MARKER_FILE).is_file() and (path / SERVERS_DIR).is_dir()


def find_repository_root(start: Path) -> Path:
    """
    Walk up from `start` looking for the servers repository root.

    Args:
        start: Directory to start from

    Returns:
        The first ancestor (or `start` itself) that looks like the
        repository, otherwise `start` unchanged
    """
    start = start.resolve()
    for candidate in [start, *start.parents]:
        if looks_like_servers_repo(candidate):
            if candidate != start:
                logger.info(f"Using repository root {candidate}")
            return candidate
    return start


def ensure_repository(path: Path, confirm: Callable[[str], bool]) -> Path:
    """
    Check the repository heuristics, asking once for confirmation on failure.

    Args:
        path: Candidate repository root
        confirm: Yes/no prompt; receives the question text

    Returns:
        The resolved root

    Raises:
        RepositoryNotConfirmedError: If the user answers no
    """
    root = find_repository_root(path)
    if looks_like_servers_repo(root):
        return root

    logger.warning(f"{root} does not contain {MARKER_FILE} and a {SERVERS_DIR}/ folder")
    question = (
        f"'{root}' does not look like the modelcontextprotocol/servers repository. "
        "Continue anyway?"
    )
    if not confirm(question):
        raise RepositoryNotConfirmedError(str(root))
    return root


def iter_server_dirs(root: Path) -> list[Path]:
    """Immediate subdirectories of src/, sorted by name"""
    servers_dir = root / SERVERS_DIR
    if not servers_dir.is_dir():
        return []
    return sorted((p for p in servers_dir.iterdir() if p.is_dir()), key=lambda p: p.name)


def get_server_dir(root: Path, name: str) -> Path:
    """Path of a single server folder"""
    path = root / SERVERS_DIR / name
    if not path.is_dir():
        raise ServerNotFoundError(name, details={"path": str(path)})
    return path
