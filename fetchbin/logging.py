# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging interface for fetchbin.

Library modules log through a small Logger protocol instead of printing
directly, so they stay usable outside the CLI. The logger can be configured
globally or passed as a parameter for better isolation.

Output levels:

- Step: Always printed (progress through the install pipeline)
- Warning: Always printed (recoverable problems such as cache failures)
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)

Inside a GitHub Actions job, ActionsLogger emits workflow commands so
warnings show up as annotations on the run.

Example:
    Configure global logger:
        ```python
        from fetchbin.logging import get_logger, set_global_logger

        logger = get_logger(verbose=True)
        set_global_logger(logger)
        ```

    Use in library code:
        ```python
        from fetchbin.logging import get_global_logger

        logger = get_global_logger()
        logger.step(1, 5, "Detecting platform...")
        logger.verbose("RESOLVE", "Trying tag v1.2.3")
        logger.warning("CACHE", "Restore failed, continuing without cache")
        ```

Note:
    The default global logger is silent, so library functions won't print
    anything unless explicitly configured. The CLI configures the global
    logger when commands are executed.
"""

from __future__ import annotations

from typing import Protocol


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator.

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning for a recoverable problem.

        Args:
            prefix: Message prefix (e.g., "CACHE").
            message: Warning text.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "RESOLVE", "INSTALL").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message.

        Args:
            prefix: Message prefix (e.g., "HTTP", "ARCHIVE").
            message: Log message.
        """
        ...


class DefaultLogger:
    """Default logger implementation that prints to stdout.

    This logger respects verbose and debug flags and formats output
    consistently with the CLI output format.
    """

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        """Initialize logger with verbosity settings.

        Args:
            verbose: If True, print verbose messages.
            debug: If True, print debug messages (implies verbose).
        """
        self._verbose = verbose or debug
        self._debug = debug

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator."""
        print(f"[{step}/{total}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning (always shown)."""
        print(f"[WARNING] [{prefix}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message (only when verbose mode is active)."""
        if self._verbose:
            print(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message (only when debug mode is active)."""
        if self._debug:
            print(f"[{prefix}] {message}")


class ActionsLogger(DefaultLogger):
    """Logger for GitHub Actions runners.

    Warnings become ``::warning::`` annotations. Debug lines are always sent
    as ``::debug::`` commands, which the runner only displays when step debug
    logging is enabled for the workflow.
    """

    def warning(self, prefix: str, message: str) -> None:
        print(f"::warning title={prefix}::{_escape_command(message)}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            print(f"[{prefix}] {message}")
        else:
            print(f"::debug::[{prefix}] {_escape_command(message)}")


class SilentLogger:
    """Logger that suppresses all output.

    Useful for programmatic usage when output is not desired.
    """

    def step(self, step: int, total: int, message: str) -> None:
        """Suppress step output."""
        pass

    def warning(self, prefix: str, message: str) -> None:
        """Suppress warning output."""
        pass

    def verbose(self, prefix: str, message: str) -> None:
        """Suppress verbose output."""
        pass

    def debug(self, prefix: str, message: str) -> None:
        """Suppress debug output."""
        pass


def _escape_command(message: str) -> str:
    # Workflow command data must not contain raw %, CR or LF.
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


# Global logger instance (defaults to silent)
_global_logger: Logger = SilentLogger()


def get_logger(
    verbose: bool = False, debug: bool = False, actions: bool = False
) -> Logger:
    """Get a logger instance with specified verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).
        actions: If True, return an ActionsLogger that emits GitHub
            workflow commands for warnings and debug lines.

    Returns:
        A logger instance configured with the specified verbosity.

    Example:
        Get a verbose logger:
            ```python
            logger = get_logger(verbose=True)
            logger.verbose("MODULE", "Processing...")
            ```
    """
    if actions:
        return ActionsLogger(verbose=verbose, debug=debug)
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Get the global logger instance.

    Returns:
        The current global logger instance.

    Note:
        The default global logger is silent. Use set_global_logger() to
        configure it, or pass a logger instance directly to functions.
    """
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        This affects all library functions that fall back to the global
        logger when no logger instance is passed.
    """
    global _global_logger
    _global_logger = logger
