"""
Dockerfile inspection: lockfile references and build-context selection.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ParseError

logger = logging.getLogger(__name__)

DOCKERFILE_NAME = "Dockerfile"

KNOWN_LOCKFILES = (
    "uv.lock",
    "package-lock.json",
    "poetry.lock",
    "yarn.lock",
    "pnpm-lock.yaml",
)

_COPY_RE = re.compile(r"^\s*(COPY|ADD)\s+(.*)$", re.IGNORECASE)


@dataclass
class DockerfileInfo:
    """What the builder needs to know about one server's Dockerfile"""
    path: Path
    context: Path
    uses_repo_context: bool = False
    lockfiles: list[str] = field(default_factory=list)
    missing_lockfiles: list[str] = field(default_factory=list)

    @property
    def buildable(self) -> bool:
        return not self.missing_lockfiles


def _logical_lines(text: str) -> list[str]:
    """Join backslash continuations and drop comments"""
    lines = []
    current = ""
    for raw in text.splitlines():
        stripped = raw.strip()
        if stripped.startswith("#"):
            continue
        if stripped.endswith("\\"):
            current += stripped[:-1] + " "
            continue
        current += stripped
        if current:
            lines.append(current)
        current = ""
    if current:
        lines.append(current)
    return lines


def copy_sources(text: str) -> list[str]:
    """
    Source paths of every COPY/ADD instruction.

    Flags (``--from``, ``--chown``...) are ignored, as is the destination.
    Instructions with ``--from`` copy out of another stage and are skipped.
    """
    sources: list[str] = []
    for line in _logical_lines(text):
        match = _COPY_RE.match(line)
        if not match:
            continue
        args = match.group(2).strip()
        if args.startswith("["):
            # JSON form: ["src", "dest"]
            parts = re.findall(r'"([^"]*)"', args)
        else:
            parts = args.split()
        if any(p.lower().startswith("--from") for p in parts):
            continue
        parts = [p for p in parts if not p.startswith("--")]
        sources.extend(parts[:-1])
    return sources


def uses_repo_context(text: str) -> bool:
    """True when the Dockerfile copies repo-relative paths such as src/<name>"""
    return any(s.removeprefix("./").startswith("src/") for s in copy_sources(text))


def referenced_lockfiles(text: str) -> list[str]:
    """Known lockfile names mentioned anywhere in the Dockerfile"""
    return [name for name in KNOWN_LOCKFILES if re.search(rf"(?<![\w.-]){re.escape(name)}\b", text)]


def inspect_dockerfile(server_dir: Path, repo_root: Path) -> Optional[DockerfileInfo]:
    """
    Inspect the Dockerfile of one server folder.

    Args:
        server_dir: Folder under src/
        repo_root: Repository root, used as build context when needed

    Returns:
        DockerfileInfo, or None if the folder has no Dockerfile

    Raises:
        ParseError: If the Dockerfile cannot be read
    """
    dockerfile = server_dir / DOCKERFILE_NAME
    if not dockerfile.is_file():
        return None

    try:
        text = dockerfile.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(str(dockerfile), reason=str(e)) from e

    repo_context = uses_repo_context(text)
    context = repo_root if repo_context else server_dir
    lockfiles = referenced_lockfiles(text)
    # With the repo root as context the lockfile may sit at the root or be
    # copied from src/<name>; otherwise it must be inside the server folder.
    search = [context, server_dir] if repo_context else [server_dir]
    missing = [name for name in lockfiles if not any((d / name).is_file() for d in search)]
    if missing:
        logger.debug(f"{server_dir.name}: missing lockfiles {missing}")

    return DockerfileInfo(
        path=dockerfile,
        context=context,
        uses_repo_context=repo_context,
        lockfiles=lockfiles,
        missing_lockfiles=missing,
    )
