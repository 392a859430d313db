"""Package replacement registry and its manifest executor."""

import copy
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from .manifest import DEPENDENCY_SECTIONS, PackageManifest
from .models import ArchitectureIncompatibleEntry, PackageReplacement, ReplacementResult

logger = logging.getLogger(__name__)

REGISTRY_VERSION = "1.0.0"

DEFAULT_REPLACEMENTS = [
    PackageReplacement(
        old_name="node-sass",
        new_name="sass",
        version_mapping={"*": "^1.69.0"},
        requires_code_changes=False,
    ),
    PackageReplacement(
        old_name="request",
        new_name="node-fetch",
        version_mapping={"*": "^3.3.0"},
        requires_code_changes=True,
        code_change_description="Replace request() calls with fetch() API",
    ),
]

DEFAULT_ARCHITECTURE_INCOMPATIBLE = [
    ArchitectureIncompatibleEntry(
        package_name="node-sass",
        incompatible_architectures=["arm64"],
        replacement="sass",
        reason="node-sass uses native bindings that don't support ARM64",
    ),
    ArchitectureIncompatibleEntry(
        package_name="phantomjs",
        incompatible_architectures=["arm64"],
        replacement="puppeteer",
        reason="PhantomJS is deprecated and has no ARM64 binaries",
    ),
]

DEFAULT_KNOWN_DEAD_URLS = ["github.com/substack/querystring"]


class PackageReplacementRegistry:
    """Mappings from deprecated packages to modern alternatives."""

    def __init__(self, registry_path: str | Path | None = None):
        self.registry_path = Path(registry_path) if registry_path else None
        self.version = REGISTRY_VERSION
        self.replacements: list[PackageReplacement] = []
        self.architecture_incompatible: list[ArchitectureIncompatibleEntry] = []
        self.known_dead_urls: list[str] = []

    def load(self) -> None:
        """Load the registry file, falling back to the built-in defaults."""
        if self.registry_path is None or not self.registry_path.exists():
            logger.info("Registry file not found, using default registry")
            self._use_defaults()
            return

        try:
            data = json.loads(self.registry_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Cannot read registry %s (%s), using default registry", self.registry_path, e)
            self._use_defaults()
            return

        if not _is_valid_registry(data):
            logger.warning("Invalid registry schema in %s, using default registry", self.registry_path)
            self._use_defaults()
            return

        try:
            replacements = [PackageReplacement(**entry) for entry in data["replacements"]]
            architecture_incompatible = [
                ArchitectureIncompatibleEntry(**entry) for entry in data["architecture_incompatible"]
            ]
        except TypeError as e:
            logger.warning("Unexpected registry fields in %s (%s), using default registry", self.registry_path, e)
            self._use_defaults()
            return

        self.version = data["version"]
        self.replacements = replacements
        self.architecture_incompatible = architecture_incompatible
        self.known_dead_urls = list(data["known_dead_urls"])

    def save(self) -> None:
        if self.registry_path is None:
            raise ValueError("Registry has no file path to save to")

        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": self.version,
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "replacements": [asdict(entry) for entry in self.replacements],
            "architecture_incompatible": [asdict(entry) for entry in self.architecture_incompatible],
            "known_dead_urls": self.known_dead_urls,
        }
        self.registry_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")

    def lookup(self, package_name: str) -> PackageReplacement | None:
        for replacement in self.replacements:
            if replacement.old_name == package_name:
                return replacement
        return None

    def add(self, replacement: PackageReplacement) -> None:
        """Add a replacement, overriding any entry for the same package."""
        self.replacements = [r for r in self.replacements if r.old_name != replacement.old_name]
        self.replacements.append(replacement)

    def get_all(self) -> list[PackageReplacement]:
        return list(self.replacements)

    def get_architecture_incompatible(self) -> list[ArchitectureIncompatibleEntry]:
        return list(self.architecture_incompatible)

    def get_known_dead_urls(self) -> list[str]:
        return list(self.known_dead_urls)

    def _use_defaults(self) -> None:
        self.version = REGISTRY_VERSION
        self.replacements = copy.deepcopy(DEFAULT_REPLACEMENTS)
        self.architecture_incompatible = copy.deepcopy(DEFAULT_ARCHITECTURE_INCOMPATIBLE)
        self.known_dead_urls = list(DEFAULT_KNOWN_DEAD_URLS)


def _is_valid_registry(data) -> bool:
    if not isinstance(data, dict):
        return False
    if not isinstance(data.get("version"), str):
        return False
    for key in ("replacements", "architecture_incompatible", "known_dead_urls"):
        if not isinstance(data.get(key), list):
            return False
    return all(_is_valid_replacement(entry) for entry in data["replacements"])


def _is_valid_replacement(entry) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("old_name"), str)
        and bool(entry["old_name"])
        and isinstance(entry.get("new_name"), str)
        and bool(entry["new_name"])
        and isinstance(entry.get("version_mapping"), dict)
        and isinstance(entry.get("requires_code_changes"), bool)
    )


class PackageReplacementExecutor:
    """Rewrites package.json to use replacement packages."""

    async def execute_replacement(
        self, replacements: list[PackageReplacement], project_path: str | Path
    ) -> list[ReplacementResult]:
        """Apply replacements to the project manifest.

        Args:
            replacements: Replacements to apply
            project_path: Project directory containing package.json

        Returns:
            One result per dependency section that was rewritten
        """
        manifest = PackageManifest(project_path)
        data = manifest.load()
        results: list[ReplacementResult] = []

        for replacement in replacements:
            for section in DEPENDENCY_SECTIONS:
                deps = data.get(section)
                if not isinstance(deps, dict) or replacement.old_name not in deps:
                    continue

                old_version = deps[replacement.old_name]
                new_version = (
                    replacement.version_mapping.get(old_version)
                    or replacement.version_mapping.get("*")
                    or old_version
                )

                if replacement.old_name != replacement.new_name:
                    del deps[replacement.old_name]
                deps[replacement.new_name] = new_version

                logger.info(
                    "Replaced %s@%s with %s@%s in %s",
                    replacement.old_name,
                    old_version,
                    replacement.new_name,
                    new_version,
                    section,
                )
                results.append(
                    ReplacementResult(
                        package_name=replacement.new_name,
                        old_version=old_version,
                        new_version=new_version,
                        requires_manual_review=replacement.requires_code_changes,
                    )
                )

        if results:
            manifest.write(data)
        return results
