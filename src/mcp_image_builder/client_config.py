"""
MCP client configuration for the built images.

Produces the `mcpServers` block that MCP clients (Claude Desktop and
compatible hosts) read to launch servers: each entry runs the image with
`docker run -i --rm`, so the client talks to the server over the
container's stdin/stdout.
"""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .config import ServerOverride
from .exceptions import ParseError

logger = logging.getLogger(__name__)


@dataclass
class ServerLaunchConfig:
    """How a reference server's container is started"""
    name: str
    docker_args: list[str] = field(default_factory=list)
    args: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)


# Launch settings for the reference servers. Mount paths and connection
# strings are examples; adjust them in config/config.yaml.
SERVER_LAUNCH_REGISTRY: dict[str, ServerLaunchConfig] = {
    "filesystem": ServerLaunchConfig(
        name="filesystem",
        docker_args=["--mount", "type=bind,src=/Users/username/Desktop,dst=/projects/Desktop"],
        args=["/projects"],
    ),
    "git": ServerLaunchConfig(
        name="git",
        docker_args=["--mount", "type=bind,src=/Users/username,dst=/Users/username"],
    ),
    "sqlite": ServerLaunchConfig(
        name="sqlite",
        docker_args=["-v", "mcp-test:/mcp"],
        args=["--db-path", "/mcp/test.db"],
    ),
    "memory": ServerLaunchConfig(
        name="memory",
        docker_args=["-v", "claude-memory:/app/dist"],
    ),
    "postgres": ServerLaunchConfig(
        name="postgres",
        args=["postgresql://host.docker.internal:5432/mydb"],
    ),
    "redis": ServerLaunchConfig(
        name="redis",
        args=["redis://host.docker.internal:6379"],
    ),
    "puppeteer": ServerLaunchConfig(
        name="puppeteer",
        docker_args=["--init", "-e", "DOCKER_CONTAINER=true"],
    ),
    "brave-search": ServerLaunchConfig(name="brave-search", env=["BRAVE_API_KEY"]),
    "github": ServerLaunchConfig(name="github", env=["GITHUB_PERSONAL_ACCESS_TOKEN"]),
    "gitlab": ServerLaunchConfig(
        name="gitlab",
        env=["GITLAB_PERSONAL_ACCESS_TOKEN", "GITLAB_API_URL"],
    ),
    "google-maps": ServerLaunchConfig(name="google-maps", env=["GOOGLE_MAPS_API_KEY"]),
    "slack": ServerLaunchConfig(name="slack", env=["SLACK_BOT_TOKEN", "SLACK_TEAM_ID"]),
    "everart": ServerLaunchConfig(name="everart", env=["EVERART_API_KEY"]),
    "aws-kb-retrieval-server": ServerLaunchConfig(
        name="aws-kb-retrieval-server",
        env=["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_REGION"],
    ),
    "fetch": ServerLaunchConfig(name="fetch"),
    "time": ServerLaunchConfig(name="time"),
    "sequentialthinking": ServerLaunchConfig(name="sequentialthinking"),
}


def get_launch_config(server: str) -> ServerLaunchConfig:
    """Registry entry, or a plain entry for servers not in the registry"""
    return SERVER_LAUNCH_REGISTRY.get(server) or ServerLaunchConfig(name=server)


def placeholder(var: str) -> str:
    return f"<{var}>"


def build_server_entry(
    server: str,
    image_prefix: str = "mcp",
    override: Optional[ServerOverride] = None,
) -> dict[str, Any]:
    """
    Client entry for one server.

    Args:
        server: Server folder name
        image_prefix: Image repository prefix
        override: Settings from config/config.yaml

    Returns:
        {"command": "docker", "args": [...], "env": {...}}; "env" only
        when the server needs variables
    """
    launch = get_launch_config(server)
    docker_args = list(launch.docker_args)
    args = list(launch.args)
    env = {var: placeholder(var) for var in launch.env}

    if override:
        if override.docker_args is not None:
            docker_args = list(override.docker_args)
        if override.args is not None:
            args = list(override.args)
        env.update(override.env)

    env_flags = []
    for var in env:
        env_flags.extend(["-e", var])

    entry: dict[str, Any] = {
        "command": "docker",
        "args": ["run", "-i", "--rm", *docker_args, *env_flags, f"{image_prefix}/{server}", *args],
    }
    if env:
        entry["env"] = env
    return entry


def build_client_config(
    servers: list[str],
    image_prefix: str = "mcp",
    overrides: Optional[dict[str, ServerOverride]] = None,
) -> dict[str, Any]:
    """The `mcpServers` document for the given servers"""
    overrides = overrides or {}
    return {
        "mcpServers": {
            name: build_server_entry(name, image_prefix, overrides.get(name))
            for name in servers
        }
    }


def render_client_config(config: dict[str, Any]) -> str:
    return json.dumps(config, indent=2)


def default_client_config_path() -> Path:
    """Location of claude_desktop_config.json on this platform"""
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "Claude" / "claude_desktop_config.json"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "Claude" / "claude_desktop_config.json"


def merge_into_file(path: Path, config: dict[str, Any]) -> dict[str, Any]:
    """
    Merge `mcpServers` entries into an existing client config file.

    Entries with the same name are replaced; other servers and top-level
    keys are kept. The file and its parent folder are created if missing.

    Returns:
        The document written

    Raises:
        ParseError: If the existing file is not a JSON object
    """
    existing: dict[str, Any] = {}
    if path.exists():
        try:
            existing = json.loads(path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise ParseError(str(path), reason=str(e)) from e
        if not isinstance(existing, dict):
            raise ParseError(str(path), reason="top level must be a JSON object")

    servers = existing.get("mcpServers")
    if not isinstance(servers, dict):
        servers = {}
    servers.update(config.get("mcpServers", {}))
    existing["mcpServers"] = servers

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_client_config(existing) + "\n", encoding="utf-8")
    logger.info(f"Wrote {len(config.get('mcpServers', {}))} server entries to {path}")
    return existing
