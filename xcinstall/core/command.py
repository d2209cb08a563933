"""Process execution primitive used for OS utilities."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished process."""

    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class SystemCommand:
    """Run OS utilities and capture their output.

    Commands never raise on a non-zero exit; callers inspect the returned
    CommandResult. A missing executable is reported as exit code 127.
    """

    def __init__(self, sudo: str = "sudo"):
        self.sudo = sudo

    def run(
        self,
        argv: Sequence[str],
        *,
        privileged: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            argv: Program and arguments
            privileged: Prefix the command with sudo
            env: Variables overriding the inherited environment

        Returns:
            Command result
        """
        argv_list = [self.sudo, *argv] if privileged else list(argv)
        logger.debug("command_run", command=format_argv(argv_list))

        try:
            p = subprocess.run(
                argv_list,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=dict(os.environ, **(env or {})),
            )
        except FileNotFoundError as e:
            logger.warning("command_not_found", command=argv_list[0])
            return CommandResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

        if p.returncode != 0:
            logger.debug(
                "command_failed",
                command=format_argv(argv_list),
                returncode=p.returncode,
                stderr=p.stderr.strip(),
            )

        return CommandResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
