# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Environment and external command capabilities used by credential resolution."""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)


class Environment:
    """Read-only view over environment variables."""

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = environ if environ is not None else os.environ

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return a variable, treating empty values as unset."""
        value = self._environ.get(name)
        if value is None or value == "":
            return default
        return value

    def first(self, *names: str) -> str | None:
        """Return the first variable among names that is set."""
        for name in names:
            value = self.get(name)
            if value is not None:
                return value
        return None

    def get_float(self, name: str, default: float | None = None) -> float | None:
        value = self.get(name)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            return default


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Runs locally installed provider CLIs to read cached tokens."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def available(self, command: str) -> bool:
        return shutil.which(command) is not None

    def run(self, command: str, *args: str) -> CommandResult:
        """Run a command and capture stdout.

        A missing binary or a timeout is reported as exit code 127.
        """
        argv = [command, *args]
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.debug(f"Command {command} not runnable: {e}")
            return CommandResult(stdout="", exit_code=127)
        except subprocess.TimeoutExpired:
            logger.debug(f"Command {command} timed out after {self.timeout}s")
            return CommandResult(stdout="", exit_code=127)
        return CommandResult(stdout=completed.stdout or "", exit_code=completed.returncode)
