"""Update orchestration: detection, planning and batch execution."""

import logging
from pathlib import Path

from .cache import TTLCache
from .detect import BlockingDependencyDetector
from .executor import BatchExecutor
from .models import (
    AnalysisResult,
    BatchExecutionResult,
    BlockingReason,
    ExecutionSummary,
    FailedUpdate,
    PackageReplacement,
    PlanItem,
    ReplacementResult,
    URLValidationResult,
    UpdateBatch,
)
from .planner import BatchPlanner
from .replacements import PackageReplacementExecutor, PackageReplacementRegistry
from .urls import URLValidator, is_url_reference

logger = logging.getLogger(__name__)

UNKNOWN_BATCH_ERROR = "Unknown batch execution error"

_BLOCKING_MESSAGES = {
    BlockingReason.ARCHITECTURE_INCOMPATIBLE: "not installable on this architecture",
    BlockingReason.BUILD_FAILURE: "native build is known to fail",
    BlockingReason.DEAD_URL: "archive URL is unreachable",
}


class UpdateOrchestrator:
    """Runs detection, planning and execution for a project's update plan."""

    def __init__(
        self,
        blocking_detector: BlockingDependencyDetector,
        url_validator: URLValidator,
        planner: BatchPlanner,
        executor: BatchExecutor,
        replacement_registry: PackageReplacementRegistry,
        replacement_executor: PackageReplacementExecutor,
    ):
        self.blocking_detector = blocking_detector
        self.url_validator = url_validator
        self.planner = planner
        self.executor = executor
        self.replacement_registry = replacement_registry
        self.replacement_executor = replacement_executor

    async def analyze(self, project_path: str | Path, items: list[PlanItem]) -> AnalysisResult:
        """Detect problems and plan update batches.

        Detection results are informational: every item is planned.

        Args:
            project_path: Project directory
            items: Plan items, deduplicated by package name

        Returns:
            Detections plus safety-ordered update batches
        """
        logger.info("Analyzing %d plan items for %s", len(items), project_path)

        blocking_dependencies = await self.blocking_detector.detect(
            {item.package_name: item.current_version for item in items}
        )

        dead_urls: list[URLValidationResult] = []
        replacements: list[PackageReplacement] = []
        for item in items:
            if is_url_reference(item.package_name):
                result = await self.url_validator.validate(item.package_name)
                if not result.is_valid:
                    logger.warning("Dead URL detected: %s", item.package_name)
                    dead_urls.append(result)

            replacement = self.replacement_registry.lookup(item.package_name)
            if replacement:
                logger.info("Replacement found: %s -> %s", item.package_name, replacement.new_name)
                replacements.append(replacement)

        batches = self.planner.reorder_for_safety(self.planner.create_batches(items))

        return AnalysisResult(
            blocking_dependencies=blocking_dependencies,
            dead_urls=dead_urls,
            replacements=replacements,
            update_batches=batches,
            initial_plan_items=list(items),
        )

    async def execute(self, project_path: str | Path, analysis: AnalysisResult) -> ExecutionSummary:
        """Apply replacements, then every batch in order.

        A failed batch never stops the remaining ones.

        Args:
            project_path: Project directory
            analysis: Result of analyze()

        Returns:
            Aggregated successes, failures and manual-review replacements
        """
        logger.info(
            "Executing %d batches and %d replacements for %s",
            len(analysis.update_batches),
            len(analysis.replacements),
            project_path,
        )

        manual_review: list[ReplacementResult] = []
        if analysis.replacements:
            replacement_results = await self.replacement_executor.execute_replacement(
                analysis.replacements, project_path
            )
            manual_review = [result for result in replacement_results if result.requires_manual_review]
            logger.info("%d replacements require manual review", len(manual_review))

        successful: list[PlanItem] = []
        failed: list[FailedUpdate] = []
        batch_results: list[BatchExecutionResult] = []

        total = len(analysis.update_batches)
        for index, batch in enumerate(analysis.update_batches, start=1):
            logger.info("Executing batch %d/%d: %s", index, total, batch.id)
            result = await self.executor.execute_with_fallback(batch, project_path)
            batch_results.append(result)

            batch_successes, batch_failures = split_batch_outcome(batch, result)
            successful.extend(batch_successes)
            failed.extend(batch_failures)

            if result.success:
                logger.info("Batch %s succeeded, %d packages updated", batch.id, len(batch_successes))
            else:
                logger.warning("Batch %s failed", batch.id)

        logger.info("Execution complete: %d successful, %d failed", len(successful), len(failed))

        return ExecutionSummary(
            successful_updates=successful,
            failed_updates=failed,
            manual_intervention_required=manual_review,
            overall_success=not failed,
            batch_results=batch_results,
        )


def split_batch_outcome(
    batch: UpdateBatch, result: BatchExecutionResult
) -> tuple[list[PlanItem], list[FailedUpdate]]:
    """Split a batch into updated items and failed items."""
    if result.success:
        succeeded = list(result.batch.packages)
    else:
        succeeded = []
    succeeded_names = {item.package_name for item in succeeded}

    package_errors = {
        package_result.item.package_name: package_result.error.message
        for package_result in result.package_results
        if package_result.error is not None
    }
    batch_error = result.error.message if result.error else UNKNOWN_BATCH_ERROR

    failed = [
        FailedUpdate(item=item, error=package_errors.get(item.package_name, batch_error))
        for item in batch.packages
        if item.package_name not in succeeded_names
    ]
    return succeeded, failed


def describe_findings(analysis: AnalysisResult) -> list[str]:
    """Human-readable lines for every detection in an analysis."""
    lines = []
    for blocking in analysis.blocking_dependencies:
        line = f"Blocking: {blocking.name}@{blocking.version} ({_BLOCKING_MESSAGES[blocking.reason]})"
        if blocking.replacement:
            line += f", replace with {blocking.replacement.new_name}"
        lines.append(line)

    for dead_url in analysis.dead_urls:
        detail = dead_url.error or f"HTTP {dead_url.status_code}"
        lines.append(f"Dead URL: {dead_url.url} ({detail})")

    for replacement in analysis.replacements:
        line = f"Replacement: {replacement.old_name} -> {replacement.new_name}"
        if replacement.requires_code_changes:
            line += " (code changes required)"
        lines.append(line)

    return lines


def create_orchestrator(
    max_batch_size: int = 10,
    installer: str = "npm",
    restore: str = "snapshot",
    registry_path: str | Path | None = None,
    url_timeout: float = 5.0,
    cache_ttl: float = 3600.0,
    cache_size: int = 500,
) -> UpdateOrchestrator:
    """Build an orchestrator with the default collaborators."""
    registry = PackageReplacementRegistry(registry_path)
    registry.load()

    url_validator = URLValidator(timeout=url_timeout, cache=TTLCache(ttl=cache_ttl, max_size=cache_size))

    return UpdateOrchestrator(
        blocking_detector=BlockingDependencyDetector(registry=registry, url_validator=url_validator),
        url_validator=url_validator,
        planner=BatchPlanner(max_batch_size=max_batch_size),
        executor=BatchExecutor(installer=installer, restore=restore),
        replacement_registry=registry,
        replacement_executor=PackageReplacementExecutor(),
    )
