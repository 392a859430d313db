"""Batch planning for dependency updates."""

import logging
import re

from .models import (
    MAJOR_PRIORITY,
    MINOR_PATCH_PRIORITY,
    REPLACEMENT_PRIORITY,
    RISK_ORDER,
    PlanItem,
    UpdateBatch,
)

logger = logging.getLogger(__name__)

_RANGE_PREFIX = re.compile(r"^[\^~>=<]+")
_LEADING_INTEGER = re.compile(r"^(\d+)")


def extract_major_version(version: str) -> int | None:
    """Extract the major version from a version specifier.

    Handles plain and range-qualified forms (1.2.3, ^1.2.3, ~1.2.3, >=1.0).

    Args:
        version: Version specifier string

    Returns:
        Leading integer, or None if the string does not start with one
    """
    cleaned = _RANGE_PREFIX.sub("", version or "")
    match = _LEADING_INTEGER.match(cleaned)
    if not match:
        return None
    return int(match.group(1))


def is_major_version_update(item: PlanItem) -> bool:
    """Check whether an item bumps the major version."""
    current_major = extract_major_version(item.current_version)
    target_major = extract_major_version(item.target_version)

    if current_major is None or target_major is None:
        return False

    return target_major > current_major


class BatchPlanner:
    """Groups plan items into prioritized, size-limited batches."""

    def __init__(self, max_batch_size: int = 10):
        """Initialize batch planner.

        Args:
            max_batch_size: Maximum packages per replacement or minor/patch batch
        """
        if max_batch_size < 1:
            raise ValueError(f"max_batch_size must be at least 1, got {max_batch_size}")
        self.max_batch_size = max_batch_size

    def create_batches(self, items: list[PlanItem]) -> list[UpdateBatch]:
        """Create batches from plan items.

        Replacement/security items (priority >= 1000) are grouped first, each
        major-version bump gets a batch of its own, and the remaining
        minor/patch items are grouped last.

        Args:
            items: Plan items, already deduplicated by package name

        Returns:
            Batches in creation order
        """
        logger.info("Creating batches from %d plan items", len(items))

        ordered = sorted(items, key=lambda item: -item.priority)

        replacement_items = [item for item in ordered if item.priority >= REPLACEMENT_PRIORITY]
        major_items = [
            item
            for item in ordered
            if item.priority < REPLACEMENT_PRIORITY and is_major_version_update(item)
        ]
        minor_patch_items = [
            item
            for item in ordered
            if item.priority < REPLACEMENT_PRIORITY and not is_major_version_update(item)
        ]

        batches: list[UpdateBatch] = []

        for chunk in self._chunk(replacement_items):
            batches.append(self._new_batch(len(batches) + 1, chunk, REPLACEMENT_PRIORITY))
            logger.info("Created replacement batch %s with %d packages", batches[-1].id, len(chunk))

        for item in major_items:
            batch = UpdateBatch(
                id=f"batch-{len(batches) + 1}",
                packages=[item],
                priority=MAJOR_PRIORITY,
                estimated_risk="high",
            )
            batches.append(batch)
            logger.info("Created major update batch %s for %s", batch.id, item.package_name)

        for chunk in self._chunk(minor_patch_items):
            batches.append(self._new_batch(len(batches) + 1, chunk, MINOR_PATCH_PRIORITY))
            logger.info("Created minor/patch batch %s with %d packages", batches[-1].id, len(chunk))

        logger.info("Created %d total batches", len(batches))
        return batches

    def estimate_batch_risk(self, batch: UpdateBatch) -> str:
        """Estimate the risk level of a batch.

        Returns:
            "low", "medium" or "high"
        """
        packages = batch.packages

        if not packages:
            return "low"

        if any(is_major_version_update(item) for item in packages):
            return "high"

        has_security_fix = any(item.fixes_vulnerabilities for item in packages)
        if has_security_fix and len(packages) > 5:
            return "medium"

        if len(packages) <= 5:
            return "low"

        return "medium"

    def reorder_for_safety(self, batches: list[UpdateBatch]) -> list[UpdateBatch]:
        """Order batches by priority (highest first), then risk (lowest first)."""
        reordered = sorted(
            batches,
            key=lambda batch: (-batch.priority, RISK_ORDER[batch.estimated_risk]),
        )

        logger.info("Batch execution order:")
        for index, batch in enumerate(reordered, start=1):
            logger.info(
                "  %d. %s: %d packages, priority=%d, risk=%s",
                index,
                batch.id,
                len(batch.packages),
                batch.priority,
                batch.estimated_risk,
            )

        return reordered

    def _chunk(self, items: list[PlanItem]) -> list[list[PlanItem]]:
        size = self.max_batch_size
        return [items[start:start + size] for start in range(0, len(items), size)]

    def _new_batch(self, number: int, items: list[PlanItem], priority: int) -> UpdateBatch:
        batch = UpdateBatch(id=f"batch-{number}", packages=items, priority=priority)
        batch.estimated_risk = self.estimate_batch_risk(batch)
        return batch
