"""Exception types raised by pipeline stages.

Every error carries the process exit code the CLI should return when the
pipeline stops on it.
"""

from __future__ import annotations


class PackagingError(RuntimeError):
    """Base class for failures that stop the packaging pipeline."""

    default_exit_code = 1

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = self.default_exit_code if exit_code is None else int(exit_code)


class EnvironmentCheckError(PackagingError):
    """Host platform or required tooling is not usable."""


class FetchError(PackagingError):
    """Downloading a pinned tool failed."""


class StagingError(PackagingError):
    """Building the AppDir tree failed."""


class DescriptorError(PackagingError):
    """A desktop entry is missing required keys or references unknown actions."""


class ToolInvocationError(PackagingError):
    """An external command exited non-zero."""

    def __init__(self, command: str, exit_code: int, *, output: str = "") -> None:
        super().__init__(f"Command failed with exit code {exit_code}: {command}", exit_code=exit_code)
        self.command = command
        self.output = output
