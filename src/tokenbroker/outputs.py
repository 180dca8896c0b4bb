"""Output sinks for the minted token and run state."""

from __future__ import annotations

import abc
import os
import sys
import uuid
from collections.abc import Mapping
from typing import Any, TextIO


class OutputSink(abc.ABC):
    """Where a run publishes its results.

    ``set_secret`` must be called with the token before it appears in any
    other output.
    """

    @abc.abstractmethod
    def set_secret(self, value: str) -> None:
        """Register *value* for masking in all later output."""

    @abc.abstractmethod
    def set_output(self, name: str, value: Any) -> None:
        """Publish a named step output."""

    @abc.abstractmethod
    def save_state(self, name: str, value: Any) -> None:
        """Persist a value for the post-run cleanup step."""

    @abc.abstractmethod
    def set_failed(self, message: str) -> None:
        """Report a terminal failure."""


def _file_command_entry(name: str, value: str) -> str:
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


class ActionsOutputSink(OutputSink):
    """GitHub Actions runner sink using workflow commands and file commands."""

    def __init__(
        self, env: Mapping[str, str] | None = None, stream: TextIO | None = None
    ) -> None:
        self._env = os.environ if env is None else env
        self._stream = stream or sys.stdout

    def _command(self, command: str, value: str) -> None:
        self._stream.write(f"::{command}::{value}\n")
        self._stream.flush()

    def _append(self, env_name: str, name: str, value: Any) -> bool:
        path = self._env.get(env_name)
        if not path:
            return False
        with open(path, "a", encoding="utf-8") as f:
            f.write(_file_command_entry(name, str(value)))
        return True

    def set_secret(self, value: str) -> None:
        self._command("add-mask", value)

    def set_output(self, name: str, value: Any) -> None:
        if not self._append("GITHUB_OUTPUT", name, value):
            self._command(f"set-output name={name}", str(value))

    def save_state(self, name: str, value: Any) -> None:
        if not self._append("GITHUB_STATE", name, value):
            self._command(f"save-state name={name}", str(value))

    def set_failed(self, message: str) -> None:
        self._command("error", message)


class MemorySink(OutputSink):
    """Collects everything in memory."""

    def __init__(self) -> None:
        self.secrets: list[str] = []
        self.outputs: dict[str, Any] = {}
        self.state: dict[str, Any] = {}
        self.failures: list[str] = []
        # Call order, without values.
        self.events: list[str] = []

    def set_secret(self, value: str) -> None:
        self.secrets.append(value)
        self.events.append("set_secret")

    def set_output(self, name: str, value: Any) -> None:
        self.outputs[name] = value
        self.events.append(f"set_output:{name}")

    def save_state(self, name: str, value: Any) -> None:
        self.state[name] = value
        self.events.append(f"save_state:{name}")

    def set_failed(self, message: str) -> None:
        self.failures.append(message)
        self.events.append("set_failed")
