"""Custom exceptions for MCP Image Builder."""


class BuilderError(Exception):
    """Base exception for all MCP Image Builder errors."""

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize error.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RepositoryNotConfirmedError(BuilderError):
    """Raised when the user declines to build outside the servers repository."""

    def __init__(self, path: str, details: dict | None = None):
        """
        Initialize error.

        Args:
            path: Directory that failed the repository check
            details: Additional error details
        """
        message = f"Aborted: '{path}' was not confirmed as the MCP servers repository"
        super().__init__(message, details)
        self.path = path


class ServerNotFoundError(BuilderError):
    """Raised when a requested server folder does not exist."""

    def __init__(self, server: str, details: dict | None = None):
        message = f"Server '{server}' not found"
        super().__init__(message, details)
        self.server = server


class ParseError(BuilderError):
    """Raised when a Dockerfile or config file cannot be read."""

    def __init__(self, source: str, reason: str | None = None, details: dict | None = None):
        """
        Initialize error.

        Args:
            source: Source that failed to parse
            reason: Reason for parse failure
            details: Additional error details
        """
        message = f"Failed to parse {source}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.source = source
        self.reason = reason


class CommandError(BuilderError):
    """Raised when a docker command fails."""

    def __init__(
        self, command: list[str], return_code: int, stderr: str | None = None, details: dict | None = None
    ):
        """
        Initialize error.

        Args:
            command: Command that failed
            return_code: Command return code
            stderr: Error output
            details: Additional error details
        """
        cmd_str = " ".join(command)
        message = f"Command '{cmd_str}' failed with return code {return_code}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message, details)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class CommandTimeoutError(CommandError):
    """Raised when a docker command times out."""

    def __init__(self, command: list[str], timeout: float, details: dict | None = None):
        super().__init__(command, -1, stderr=f"Timeout after {timeout} seconds", details=details)
        self.timeout = timeout


class DockerNotFoundError(BuilderError):
    """Raised when the docker binary is not on PATH."""

    def __init__(self, details: dict | None = None):
        message = "Docker CLI not found. Install Docker and make sure 'docker' is on your PATH."
        super().__init__(message, details)
