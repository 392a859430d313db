"""Pytest configuration and fixtures."""

import json
from pathlib import Path

import pytest

from core.models import PlanItem
from core.runner import CommandResult


class FakeRunner:
    """Command runner that records each call with the manifest at that moment."""

    def __init__(self, decide):
        self.decide = decide
        self.calls: list[tuple[list[str], dict]] = []

    async def run(self, args, cwd):
        manifest = json.loads((Path(cwd) / "package.json").read_text())
        self.calls.append((list(args), manifest))
        returncode, output = self.decide(list(args), manifest)
        return CommandResult(args=list(args), returncode=returncode, stderr=output)

    @property
    def install_flags(self) -> list[list[str]]:
        return [args[2:] for args, _ in self.calls if args[1:2] == ["install"]]


@pytest.fixture
def sample_package_json():
    """Sample package.json content, deliberately not in json.dumps layout."""
    return """{
    "name": "test-project",
    "version": "1.0.0",
    "dependencies": {
        "express": "^4.18.0",
        "lodash": "~4.17.21",
        "react": "^16.14.0"
    },
    "devDependencies": {
        "jest": "^26.0.0"
    }
}
"""


@pytest.fixture
def project_dir(tmp_path, sample_package_json):
    """Create a temporary project with a package.json."""
    (tmp_path / "package.json").write_text(sample_package_json)
    return tmp_path


@pytest.fixture
def make_item():
    """Factory for plan items."""

    def _make(name, current="1.0.0", target="1.1.0", priority=10, **kwargs):
        return PlanItem(
            package_name=name,
            current_version=current,
            target_version=target,
            priority=priority,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_runner():
    """Factory for fake command runners driven by a decision function."""
    return FakeRunner
