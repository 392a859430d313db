"""package.json access, mutation and recovery."""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path

from .errors import ManifestError
from .models import PlanItem
from .runner import CommandRunner

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"
DEPENDENCY_SECTIONS = ("dependencies", "devDependencies")


class PackageManifest:
    """A package.json file inside a project directory."""

    def __init__(self, project_path: str | Path, filename: str = MANIFEST_FILENAME):
        self.project_path = Path(project_path)
        self.path = self.project_path / filename

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def load(self, raw: bytes | None = None) -> dict:
        """Parse the manifest.

        Args:
            raw: Previously read content; the file is read when omitted

        Returns:
            The decoded JSON object
        """
        if raw is None:
            raw = self.read_bytes()

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ManifestError(f"Invalid JSON in {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(f"{self.path} does not contain a JSON object")

        return data

    def dependencies(self) -> dict[str, str]:
        """Merged name -> version map of dependencies and devDependencies."""
        data = self.load()
        merged: dict[str, str] = {}
        for section in DEPENDENCY_SECTIONS:
            deps = data.get(section)
            if isinstance(deps, dict):
                merged.update(deps)
        return merged

    def write(self, data: dict) -> None:
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        self.write_bytes(content.encode("utf-8"))

    def write_bytes(self, raw: bytes) -> None:
        """Replace the manifest atomically with the given content.

        A symlinked manifest is written through to its target, and the
        existing file mode is kept.
        """
        target = self.path.resolve()
        fd, tmp_name = tempfile.mkstemp(prefix=".package.", suffix=".tmp", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(raw)
            if target.exists():
                shutil.copymode(target, tmp_name)
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


def apply_updates(data: dict, items: list[PlanItem]) -> list[str]:
    """Overwrite target versions for packages the manifest already declares.

    Keys are never inserted or removed; names missing from both sections
    are skipped.

    Returns:
        Names of the packages whose version was written
    """
    changed = []
    for item in items:
        for section in DEPENDENCY_SECTIONS:
            deps = data.get(section)
            if isinstance(deps, dict) and item.package_name in deps:
                deps[item.package_name] = item.target_version
                if item.package_name not in changed:
                    changed.append(item.package_name)
    return changed


class SnapshotRestorer:
    """Restores the manifest from bytes captured before an attempt."""

    name = "snapshot"

    async def restore(self, manifest: PackageManifest, snapshot: bytes) -> None:
        manifest.write_bytes(snapshot)


class GitRestorer:
    """Restores the manifest to its last committed state."""

    name = "git"

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    async def restore(self, manifest: PackageManifest, snapshot: bytes) -> None:
        result = await self.runner.run(
            ["git", "checkout", "HEAD", "--", str(manifest.path)],
            cwd=manifest.project_path,
        )
        if not result.ok:
            raise ManifestError(f"git checkout of {manifest.path} failed: {result.output}")


RESTORE_MODES = ("snapshot", "git")


def make_restorer(mode: str, runner: CommandRunner) -> SnapshotRestorer | GitRestorer:
    """Create the restore strategy for a mode name."""
    if mode == "snapshot":
        return SnapshotRestorer()
    if mode == "git":
        return GitRestorer(runner)
    raise ValueError(f"Unknown restore mode: {mode}. Expected one of {', '.join(RESTORE_MODES)}")
