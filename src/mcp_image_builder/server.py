"""
MCP tool surface for the image builder.

Exposes planning, building and client-config generation as MCP tools so an
assistant that already speaks MCP can drive the build. Transport and
protocol handling come from the mcp SDK's FastMCP.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .builder import ACTION_BUILD, ImageBuilder, plan_builds
from .client_config import build_client_config, render_client_config
from .config import BuilderSettings
from .docker_client import DockerClient
from .exceptions import BuilderError
from .repository import looks_like_servers_repo

logger = logging.getLogger(__name__)


@dataclass
class BuilderState:
    """Repository and settings the tools operate on"""
    root: Path = field(default_factory=Path.cwd)
    settings: BuilderSettings = field(default_factory=BuilderSettings)
    built: list[str] = field(default_factory=list)


state = BuilderState()

mcp = FastMCP(
    name="MCP Image Builder",
    instructions=(
        "Builds Docker images for the reference MCP servers from a local "
        "checkout of modelcontextprotocol/servers and produces the client "
        "configuration that launches them."
    ),
)


@mcp.tool()
async def list_buildable_servers() -> str:
    """
    List server folders and whether each one will be built.

    Returns:
        One line per server with the build/skip decision and its reason
    """
    if not looks_like_servers_repo(state.root):
        return f"❌ {state.root} is not a modelcontextprotocol/servers checkout"

    try:
        plans = plan_builds(state.root, state.settings)
    except BuilderError as e:
        return f"❌ {e.message}"
    if not plans:
        return "ℹ️ No server folders found under src/."

    lines = ["# Server folders\n"]
    for plan in plans:
        mark = "🔨" if plan.action == ACTION_BUILD else "⏭️"
        target = f" → `{plan.tag}`" if plan.tag else ""
        lines.append(f"- {mark} **{plan.server}**{target} ({plan.reason})")
    return "\n".join(lines)


@mcp.tool()
async def build_servers(servers: Optional[list[str]] = None, keep_going: bool = False) -> str:
    """
    Build Docker images for the given servers (all buildable ones if empty).

    Args:
        servers: Folder names under src/ to build
        keep_going: Continue after a failed build

    Returns:
        Build summary
    """
    if not looks_like_servers_repo(state.root):
        return f"❌ {state.root} is not a modelcontextprotocol/servers checkout"

    settings = replace(state.settings, only=list(servers or []))
    builder = ImageBuilder(
        DockerClient(command_timeout=settings.command_timeout, stream_output=False),
        keep_going=keep_going,
    )

    try:
        plans = plan_builds(state.root, settings)
        report = await asyncio.to_thread(builder.build_all, plans)
    except BuilderError as e:
        logger.error(f"Build failed: {e}")
        return f"❌ {e.message}"

    state.built = sorted(set(state.built) | set(report.built))

    lines = ["# Build results\n"]
    for name in report.built:
        lines.append(f"✅ {name} ({report.durations[name]:.1f}s)")
    for name, error in report.failed.items():
        lines.append(f"❌ {name}: {error}")
    if servers:
        for name in servers:
            if name in report.skipped:
                lines.append(f"⏭️ {name}: {report.skipped[name]}")
    if not report.built and not report.failed:
        lines.append("Nothing to build.")
    return "\n".join(lines)


@mcp.tool()
async def get_client_config(servers: Optional[list[str]] = None) -> str:
    """
    MCP client configuration (`mcpServers` JSON) for the built images.

    Args:
        servers: Servers to include; defaults to those built in this
            session, or every buildable server if nothing was built yet

    Returns:
        JSON document to paste into the client's config file
    """
    if servers:
        names = list(servers)
    elif state.built:
        names = list(state.built)
    else:
        try:
            plans = plan_builds(state.root, state.settings)
        except BuilderError as e:
            return f"❌ {e.message}"
        names = [p.server for p in plans if p.action == ACTION_BUILD]

    config = build_client_config(names, state.settings.image_prefix, state.settings.servers)
    return render_client_config(config)


def main(root: Optional[Path] = None, settings: Optional[BuilderSettings] = None):
    """Run the MCP server over stdio"""
    if root is not None:
        state.root = root
    if settings is not None:
        state.settings = settings

    logger.info(f"Starting MCP Image Builder for {state.root}")
    mcp.run()
