"""
Build orchestration: decide what to build, then build it one server at a time.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .config import BuilderSettings
from .docker_client import DockerClient
from .dockerfile import DockerfileInfo, inspect_dockerfile
from .exceptions import CommandError, ParseError
from .repository import get_server_dir, iter_server_dirs
from .telemetry import Telemetry

logger = logging.getLogger(__name__)

ACTION_BUILD = "build"
ACTION_SKIP = "skip"


@dataclass
class BuildPlan:
    """Decision for one server folder"""
    server: str
    action: str
    reason: str = ""
    tag: Optional[str] = None
    dockerfile: Optional[DockerfileInfo] = None

    @property
    def command(self) -> Optional[list[str]]:
        if self.action != ACTION_BUILD or self.dockerfile is None:
            return None
        return DockerClient.build_command(self.tag, self.dockerfile.path, self.dockerfile.context)


@dataclass
class BuildReport:
    """Outcome of a build run"""
    built: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    durations: dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def plan_server(server_dir: Path, root: Path, settings: BuilderSettings) -> BuildPlan:
    """Build or skip decision for a single server folder"""
    name = server_dir.name

    if settings.only and name not in settings.only:
        return BuildPlan(name, ACTION_SKIP, "not selected")
    if name in settings.skip:
        return BuildPlan(name, ACTION_SKIP, "excluded by configuration")

    try:
        info = inspect_dockerfile(server_dir, root)
    except ParseError as e:
        logger.warning(e.message)
        return BuildPlan(name, ACTION_SKIP, f"unreadable Dockerfile: {e.reason}")
    if info is None:
        return BuildPlan(name, ACTION_SKIP, "no Dockerfile")
    if not info.buildable:
        missing = ", ".join(info.missing_lockfiles)
        return BuildPlan(name, ACTION_SKIP, f"missing {missing}", dockerfile=info)

    context = "repository root" if info.uses_repo_context else "server folder"
    return BuildPlan(
        name,
        ACTION_BUILD,
        f"context: {context}",
        tag=settings.image_tag(name),
        dockerfile=info,
    )


def plan_builds(root: Path, settings: BuilderSettings) -> list[BuildPlan]:
    """
    Plan the whole run.

    Args:
        root: Repository root
        settings: Builder settings (skip list, selection, image prefix)

    Returns:
        One BuildPlan per folder under src/, in name order

    Raises:
        ServerNotFoundError: If a name in `settings.only` has no folder
    """
    for name in settings.only:
        get_server_dir(root, name)

    plans = [plan_server(d, root, settings) for d in iter_server_dirs(root)]
    to_build = sum(1 for p in plans if p.action == ACTION_BUILD)
    logger.info(f"Planned {to_build} builds, {len(plans) - to_build} skipped")
    return plans


class ImageBuilder:
    """Runs docker build for each planned server, sequentially"""

    def __init__(
        self,
        docker: DockerClient,
        telemetry: Optional[Telemetry] = None,
        keep_going: bool = False,
        on_start: Optional[Callable[[BuildPlan], None]] = None,
    ):
        """
        Initialize builder.

        Args:
            docker: Docker client
            telemetry: Event sink for build results
            keep_going: Record failures and continue instead of stopping
            on_start: Called before each build (used for progress output)
        """
        self.docker = docker
        self.telemetry = telemetry or Telemetry()
        self.keep_going = keep_going
        self.on_start = on_start

    def build(self, plan: BuildPlan) -> float:
        """Build one image; returns the elapsed seconds"""
        if self.on_start:
            self.on_start(plan)

        started = time.monotonic()
        try:
            self.docker.build_image(plan.tag, plan.dockerfile.path, plan.dockerfile.context)
        except CommandError as e:
            self.telemetry.log_build(
                plan.server, plan.tag, False, time.monotonic() - started, error=e.message
            )
            raise
        elapsed = time.monotonic() - started
        self.telemetry.log_build(plan.server, plan.tag, True, elapsed)
        return elapsed

    def build_all(self, plans: list[BuildPlan]) -> BuildReport:
        """
        Build every plan marked for building.

        Raises:
            CommandError: On the first failed build, unless keep_going is set
        """
        report = BuildReport()

        for plan in plans:
            if plan.action != ACTION_BUILD:
                report.skipped[plan.server] = plan.reason
                logger.info(f"Skipping {plan.server}: {plan.reason}")
                continue

            try:
                report.durations[plan.server] = self.build(plan)
            except CommandError as e:
                if not self.keep_going:
                    raise
                logger.error(f"Build failed for {plan.server}: {e}")
                report.failed[plan.server] = e.message
                continue

            report.built.append(plan.server)

        return report
