"""
MCP Image Builder

Builds Docker images for the reference MCP servers from a checkout of
modelcontextprotocol/servers and prints the `mcpServers` configuration
that MCP clients use to launch them.
"""

from .builder import BuildPlan, BuildReport, ImageBuilder, plan_builds
from .client_config import build_client_config, render_client_config

__version__ = "1.0.0"
__all__ = [
    "BuildPlan",
    "BuildReport",
    "ImageBuilder",
    "plan_builds",
    "build_client_config",
    "render_client_config",
]
