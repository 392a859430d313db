"""Detection of dependencies that block installation."""

import logging
import platform

from .models import BlockingDependency, BlockingReason
from .replacements import PackageReplacementRegistry
from .urls import URLValidator

logger = logging.getLogger(__name__)

KNOWN_BLOCKING_PACKAGES = {
    "node-sass": BlockingReason.ARCHITECTURE_INCOMPATIBLE,
    "phantomjs": BlockingReason.ARCHITECTURE_INCOMPATIBLE,
    "phantomjs-prebuilt": BlockingReason.ARCHITECTURE_INCOMPATIBLE,
    "fibers": BlockingReason.ARCHITECTURE_INCOMPATIBLE,
    "deasync": BlockingReason.BUILD_FAILURE,
    "node-canvas": BlockingReason.BUILD_FAILURE,
    "canvas": BlockingReason.BUILD_FAILURE,
}

# platform.machine() values -> Node.js process.arch names
_NODE_ARCHITECTURES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "armv7l": "arm",
    "armv6l": "arm",
}


def current_architecture() -> str:
    """Return the running CPU architecture using Node.js naming."""
    machine = platform.machine().lower()
    return _NODE_ARCHITECTURES.get(machine, machine)


def is_github_archive_url(version: str) -> bool:
    return "github.com" in version and ("/archive/" in version or "/tarball/" in version)


class BlockingDependencyDetector:
    """Finds dependencies that will prevent an install from completing."""

    def __init__(
        self,
        registry: PackageReplacementRegistry | None = None,
        url_validator: URLValidator | None = None,
        architecture: str | None = None,
    ):
        """Initialize detector.

        Args:
            registry: Replacement registry used for replacements and
                architecture data
            url_validator: Validator for GitHub archive versions
            architecture: Architecture to check against (defaults to the host)
        """
        self.registry = registry
        self.url_validator = url_validator or URLValidator()
        self.architecture = architecture or current_architecture()

    async def detect(self, dependencies: dict[str, str]) -> list[BlockingDependency]:
        """Detect blocking dependencies.

        Args:
            dependencies: Package name -> version specifier

        Returns:
            Blocking dependencies in input order
        """
        blocking: list[BlockingDependency] = []

        for name, version in dependencies.items():
            reason = self.get_blocking_reason(name)
            if reason is None and self._is_architecture_incompatible(name):
                reason = BlockingReason.ARCHITECTURE_INCOMPATIBLE

            if reason is not None:
                replacement = self.registry.lookup(name) if self.registry else None
                blocking.append(BlockingDependency(name, version, reason, replacement))
                continue

            if is_github_archive_url(version):
                result = await self.url_validator.validate(version)
                if not result.is_valid:
                    blocking.append(BlockingDependency(name, version, BlockingReason.DEAD_URL))

        if blocking:
            logger.info("Found %d blocking dependencies", len(blocking))
        return blocking

    def is_known_blocking(self, package_name: str) -> bool:
        return package_name in KNOWN_BLOCKING_PACKAGES

    def get_blocking_reason(self, package_name: str) -> BlockingReason | None:
        return KNOWN_BLOCKING_PACKAGES.get(package_name)

    def _is_architecture_incompatible(self, package_name: str) -> bool:
        if not self.registry:
            return False

        for entry in self.registry.get_architecture_incompatible():
            if entry.package_name == package_name:
                return self.architecture in entry.incompatible_architectures

        return False
