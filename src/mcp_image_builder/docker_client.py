"""Docker CLI client."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .exceptions import CommandError, CommandTimeoutError, DockerNotFoundError

logger = logging.getLogger(__name__)


def run_command(
    cmd: list[str],
    timeout: Optional[float] = None,
    capture: bool = True,
) -> tuple[int, str]:
    """
    Execute a command and wait for it to finish.

    Args:
        cmd: Command and arguments
        timeout: Timeout in seconds (None waits forever)
        capture: Capture output; when False it goes straight to the terminal

    Returns:
        Tuple of (return_code, output). Output is stderr if the command
        failed and wrote any, otherwise stdout.

    Raises:
        DockerNotFoundError: If the executable does not exist
        CommandTimeoutError: If the timeout expires
    """
    logger.info(f"Executing: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise DockerNotFoundError(details={"command": cmd}) from e
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(cmd, timeout) from e

    stdout = (result.stdout or "").strip()
    stderr = (result.stderr or "").strip()
    if result.returncode != 0 and stderr:
        return result.returncode, stderr
    return result.returncode, stdout


class DockerClient:
    """Thin wrapper over the docker CLI."""

    def __init__(self, command_timeout: Optional[float] = None, stream_output: bool = True):
        """
        Initialize Docker client.

        Args:
            command_timeout: Timeout for each docker invocation, in seconds
            stream_output: Let `docker build` write to the terminal instead
                of capturing its output
        """
        self.command_timeout = command_timeout
        self.stream_output = stream_output

    def check_available(self) -> str:
        """
        Verify the docker binary works.

        Returns:
            Version string reported by docker

        Raises:
            DockerNotFoundError: If docker is not installed
            CommandError: If docker exits with an error
        """
        cmd = ["docker", "--version"]
        return_code, output = run_command(cmd, timeout=30)
        if return_code != 0:
            raise CommandError(cmd, return_code, stderr=output)
        return output

    @staticmethod
    def build_command(tag: str, dockerfile: Path, context: Path) -> list[str]:
        return ["docker", "build", "-t", tag, "-f", str(dockerfile), str(context)]

    def build_image(self, tag: str, dockerfile: Path, context: Path) -> None:
        """
        Build one image, blocking until docker finishes.

        Args:
            tag: Image tag, e.g. mcp/git
            dockerfile: Path to the Dockerfile
            context: Build context directory

        Raises:
            CommandError: If docker build fails
        """
        cmd = self.build_command(tag, dockerfile, context)
        return_code, output = run_command(
            cmd,
            timeout=self.command_timeout,
            capture=not self.stream_output,
        )

        if return_code != 0:
            raise CommandError(
                cmd,
                return_code,
                stderr=output or None,
                details={"tag": tag, "context": str(context)},
            )

    def image_exists(self, tag: str) -> bool:
        """True if the image is present in the local image store"""
        return_code, _ = run_command(["docker", "image", "inspect", tag], timeout=30)
        return return_code == 0
