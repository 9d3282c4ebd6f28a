"""Shared fixtures: a recording fake tmux runner and a Spawner wired to it."""

from datetime import datetime
from types import SimpleNamespace

import pytest

from tmux_launcher.spawn import Spawner
from tmux_launcher.tmux import TmuxClient

FIXED_NOW = datetime(2024, 5, 17, 14, 30, 5)


class FakeRunner:
    """Stands in for default_runner; records every argv."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.interactive_calls: list[list[str]] = []
        self.outputs: dict[str, str] = {}
        self.failures: dict[str, str] = {}

    def __call__(self, args, interactive=False):
        args = list(args)
        self.calls.append(args)
        if interactive:
            self.interactive_calls.append(args)
        subcommand = args[0]
        if subcommand in self.failures:
            return SimpleNamespace(returncode=1, stdout="", stderr=self.failures[subcommand])
        return SimpleNamespace(returncode=0, stdout=self.outputs.get(subcommand, ""), stderr="")

    def subcommands(self) -> list[str]:
        return [call[0] for call in self.calls]

    def calls_to(self, subcommand: str) -> list[list[str]]:
        return [call for call in self.calls if call[0] == subcommand]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def tmux(runner):
    return TmuxClient(runner=runner)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def spawner(tmux, sleeps):
    return Spawner(
        tmux=tmux,
        sleep=sleeps.append,
        clock=lambda: FIXED_NOW,
        inside=False,
        home="/home/tester",
    )


@pytest.fixture
def inside_spawner(tmux, sleeps, runner):
    runner.outputs["display-message"] = "work:2\n"
    return Spawner(
        tmux=tmux,
        sleep=sleeps.append,
        clock=lambda: FIXED_NOW,
        inside=True,
        home="/home/tester",
    )
