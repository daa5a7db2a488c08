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

"""Run outputs and PATH handling for fetchbin.

The reporter emits the three outputs of a run to the CI platform:

- version: resolved release tag
- path: absolute path of the installed binary
- cache-hit: "true" or "false"

It also emits "dir" (the install directory) and puts that directory on
the executable search path, both for later steps in the job
($GITHUB_PATH) and for the current process (os.environ["PATH"]).

Outputs are appended to the $GITHUB_OUTPUT file in the runner's
"name=value" format (heredoc form for multi-line values). Without a
configured output file the values are only logged. Reporting never raises:
write failures are logged as warnings.
"""

from __future__ import annotations

from collections.abc import MutableMapping
import os
from pathlib import Path
import uuid

from fetchbin.logging import Logger, get_global_logger
from fetchbin.results import InstallResult, ResolvedRelease


def format_output(name: str, value: str) -> str:
    """Format one output for the $GITHUB_OUTPUT file."""
    if "\n" in value or "\r" in value:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"
    return f"{name}={value}\n"


class GitHubActionsReporter:
    """Reporter writing to the runner's output and path files.

    Attributes:
        output_file: $GITHUB_OUTPUT file, or None to only log outputs.
        path_file: $GITHUB_PATH file, or None to only update this process.
    """

    def __init__(
        self,
        output_file: Path | None = None,
        path_file: Path | None = None,
        *,
        environ: MutableMapping[str, str] | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.output_file = output_file
        self.path_file = path_file
        self._environ = os.environ if environ is None else environ
        self._logger = logger or get_global_logger()

    @classmethod
    def from_environment(
        cls,
        environ: MutableMapping[str, str] | None = None,
        logger: Logger | None = None,
    ) -> GitHubActionsReporter:
        """Build a reporter from GITHUB_OUTPUT / GITHUB_PATH.

        PATH updates go to the same environ mapping.
        """
        env = os.environ if environ is None else environ
        output = env.get("GITHUB_OUTPUT")
        path = env.get("GITHUB_PATH")
        return cls(
            Path(output) if output else None,
            Path(path) if path else None,
            environ=env,
            logger=logger,
        )

    def set_output(self, name: str, value: str) -> None:
        self._logger.verbose("OUTPUT", f"{name}={value}")
        if self.output_file is None:
            return
        try:
            with self.output_file.open("a", encoding="utf-8") as f:
                f.write(format_output(name, value))
        except OSError as err:
            self._logger.warning("OUTPUT", f"Could not write output {name}: {err}")

    def add_path(self, directory: Path) -> None:
        """Prepend directory to the search path for this and later steps."""
        entry = str(directory)
        current = self._environ.get("PATH", "")
        if entry not in current.split(os.pathsep):
            self._environ["PATH"] = (
                entry + os.pathsep + current if current else entry
            )
        self._logger.verbose("OUTPUT", f"Added to PATH: {entry}")

        if self.path_file is None:
            return
        try:
            with self.path_file.open("a", encoding="utf-8") as f:
                f.write(entry + "\n")
        except OSError as err:
            self._logger.warning("OUTPUT", f"Could not update GITHUB_PATH: {err}")

    def report(self, release: ResolvedRelease, install: InstallResult) -> None:
        """Emit the run's outputs and put the install directory on PATH."""
        self.add_path(install.install_dir)
        self.set_output("version", release.tag)
        self.set_output("path", str(install.binary_path))
        self.set_output("dir", str(install.install_dir))
        self.set_output("cache-hit", "true" if install.cache_hit else "false")
