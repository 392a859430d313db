"""Batch execution with install-flag escalation and manifest recovery."""

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import ManifestError, classify_install_output
from .manifest import MANIFEST_FILENAME, PackageManifest, apply_updates, make_restorer
from .models import BatchExecutionResult, PackageResult, PlanItem, UpdateBatch
from .runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallStrategy:
    """A named installer invocation mode."""

    name: str
    flags: tuple[str, ...] = ()

    @property
    def flags_used(self) -> list[str]:
        return [self.name] if self.flags else []


DEFAULT_STRATEGY = InstallStrategy("default")

INSTALL_STRATEGIES = (
    DEFAULT_STRATEGY,
    InstallStrategy("legacy-peer-deps", ("--legacy-peer-deps",)),
    InstallStrategy("force", ("--force",)),
)


class BatchExecutor:
    """Applies batches to package.json and drives the installer.

    Every call leaves the manifest as it found it unless the call reports
    success. Batches and packages are processed strictly one at a time.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        installer: str = "npm",
        restore: str = "snapshot",
        strategies: tuple[InstallStrategy, ...] = INSTALL_STRATEGIES,
        manifest_filename: str = MANIFEST_FILENAME,
    ):
        """Initialize batch executor.

        Args:
            runner: Command runner used for installs and git restores
            installer: Package manager executable
            restore: Manifest restore mode, "snapshot" or "git"
            strategies: Ordered install strategies for execute_with_fallback
            manifest_filename: Manifest file name inside the project
        """
        self.runner = runner or CommandRunner()
        self.installer = installer
        self.restorer = make_restorer(restore, self.runner)
        self.strategies = tuple(strategies)
        self.manifest_filename = manifest_filename

    async def execute(self, batch: UpdateBatch, project_path: str | Path) -> BatchExecutionResult:
        """Apply a batch and run a single plain install.

        Args:
            batch: Batch to apply
            project_path: Project directory containing the manifest

        Returns:
            Success with the installer output, or failure after restoring
        """
        manifest = self._manifest(project_path)
        snapshot = None

        try:
            snapshot = manifest.read_bytes()
            outcome = await self._attempt(manifest, snapshot, batch.packages, DEFAULT_STRATEGY)
        except Exception as e:
            logger.warning("Batch %s failed before install completed: %s", batch.id, e)
            await self._restore(manifest, snapshot)
            return BatchExecutionResult(batch, False, str(e), classify_install_output(str(e)))

        if outcome.ok:
            return BatchExecutionResult(batch, True, outcome.output, install_flags_used=[])

        await self._restore(manifest, snapshot)
        return BatchExecutionResult(batch, False, outcome.output, classify_install_output(outcome.output))

    async def execute_with_fallback(
        self, batch: UpdateBatch, project_path: str | Path
    ) -> BatchExecutionResult:
        """Apply a batch, escalating through install strategies.

        Each strategy starts again from the pre-batch manifest. When every
        strategy fails, the packages are installed one by one and the ones
        that succeed are installed together as a final batch.

        Args:
            batch: Batch to apply
            project_path: Project directory containing the manifest

        Returns:
            Result of the first successful strategy or of the individual fallback
        """
        manifest = self._manifest(project_path)

        try:
            snapshot = manifest.read_bytes()
        except OSError as e:
            logger.warning("Cannot read %s for batch %s: %s", manifest.path, batch.id, e)
            return BatchExecutionResult(batch, False, str(e), classify_install_output(str(e)))

        log_sections = []
        for strategy in self.strategies:
            logger.info("Installing batch %s (strategy: %s)", batch.id, strategy.name)

            try:
                outcome = await self._attempt(manifest, snapshot, batch.packages, strategy)
            except Exception as e:
                logger.warning("Batch %s raised with strategy %s: %s", batch.id, strategy.name, e)
                log_sections.append(f"[{strategy.name}] {e}")
                await self._restore(manifest, snapshot)
                continue

            log_sections.append(f"[{strategy.name}] exit code {outcome.returncode}\n{outcome.output}")

            if outcome.ok:
                logger.info("Batch %s installed with strategy %s", batch.id, strategy.name)
                return BatchExecutionResult(
                    batch,
                    True,
                    "\n".join(log_sections),
                    install_flags_used=strategy.flags_used,
                )

            await self._restore(manifest, snapshot)

        logger.warning("All install strategies failed for batch %s, installing packages individually", batch.id)
        return await self._individual_fallback(batch, manifest, log_sections)

    async def _individual_fallback(
        self, batch: UpdateBatch, manifest: PackageManifest, log_sections: list[str]
    ) -> BatchExecutionResult:
        log_lines = log_sections + ["Batch installation failed. Attempting individual installation..."]
        package_results: list[PackageResult] = []

        for item in batch.packages:
            snapshot = None
            try:
                snapshot = manifest.read_bytes()
                outcome = await self._attempt(manifest, snapshot, [item], DEFAULT_STRATEGY)
                success, output = outcome.ok, outcome.output
            except Exception as e:
                success, output = False, str(e)
            finally:
                await self._restore(manifest, snapshot)

            label = f"{item.package_name}@{item.target_version}"
            if success:
                log_lines.append(f"SUCCESS: {label}")
                package_results.append(PackageResult(item, True))
            else:
                log_lines.append(f"FAILURE: {label}")
                log_lines.append(output)
                package_results.append(PackageResult(item, False, output, classify_install_output(output)))

        successful = [result.item for result in package_results if result.success]
        if not successful:
            logger.warning("No package of batch %s installed individually", batch.id)
            return BatchExecutionResult(batch, False, "\n".join(log_lines), package_results=package_results)

        final_batch = dataclasses.replace(batch, packages=successful)
        logger.info(
            "Installing %d of %d packages from batch %s together",
            len(successful),
            len(batch.packages),
            batch.id,
        )

        snapshot = None
        try:
            snapshot = manifest.read_bytes()
            outcome = await self._attempt(manifest, snapshot, successful, DEFAULT_STRATEGY)
        except Exception as e:
            log_lines.append(f"Final installation of successful packages failed: {e}")
            await self._restore(manifest, snapshot)
            return BatchExecutionResult(
                batch, False, "\n".join(log_lines), classify_install_output(str(e)), package_results=package_results
            )

        if outcome.ok:
            log_lines.append("Final installation of successful packages was successful.")
            return BatchExecutionResult(
                final_batch, True, "\n".join(log_lines), install_flags_used=[], package_results=package_results
            )

        log_lines.append("Final installation of successful packages failed.")
        log_lines.append(outcome.output)
        await self._restore(manifest, snapshot)
        return BatchExecutionResult(
            batch,
            False,
            "\n".join(log_lines),
            classify_install_output(outcome.output),
            package_results=package_results,
        )

    async def _attempt(
        self,
        manifest: PackageManifest,
        snapshot: bytes,
        items: list[PlanItem],
        strategy: InstallStrategy,
    ) -> CommandResult:
        data = manifest.load(snapshot)
        changed = apply_updates(data, items)
        if changed:
            manifest.write(data)
        else:
            logger.debug("No declared packages to update in %s", manifest.path)

        return await self.runner.run(
            [self.installer, "install", *strategy.flags],
            cwd=manifest.project_path,
        )

    async def _restore(self, manifest: PackageManifest, snapshot: bytes | None) -> None:
        if snapshot is None:
            return
        try:
            await self.restorer.restore(manifest, snapshot)
        except (OSError, ManifestError) as e:
            logger.warning("Failed to restore %s: %s", manifest.path, e)

    def _manifest(self, project_path: str | Path) -> PackageManifest:
        return PackageManifest(project_path, self.manifest_filename)
