"""nuxt-lambda exception hierarchy.

All builder exceptions inherit from BuilderError so callers can catch
pipeline failures in one clause. Every failure is terminal for the build
invocation; nothing here is retried.
"""


class BuilderError(Exception):
    """Base exception for all builder errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ConfigurationError(BuilderError):
    """Invalid entrypoint, template or settings."""


class ExternalProcessError(BuilderError):
    """An install or build process exited non-zero or could not be spawned."""

    def __init__(
        self,
        message: str = "",
        *,
        command: list[str] | None = None,
        exit_code: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.exit_code = exit_code
        self.output = output


class ArtifactShapeError(BuilderError):
    """Generated build output does not have the shape this builder expects."""
