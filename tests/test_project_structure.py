"""Test that project structure is correct and modules can be imported."""

import core.detect
import core.executor
import core.models
import core.orchestrator
import core.planner
from core.models import PlanItem, UpdateBatch


def test_core_modules_importable():
    """Ensure core modules can be imported."""
    # This will fail if modules have syntax errors or missing dependencies

    # Basic smoke test - ensure key classes exist
    assert hasattr(core.models, "PlanItem")
    assert hasattr(core.models, "UpdateBatch")
    assert hasattr(core.models, "BatchExecutionResult")
    assert hasattr(core.planner, "BatchPlanner")
    assert hasattr(core.executor, "BatchExecutor")
    assert hasattr(core.orchestrator, "UpdateOrchestrator")
    assert hasattr(core.detect, "BlockingDependencyDetector")


def test_model_creation():
    """Test that basic models can be instantiated."""
    item = PlanItem(package_name="express", current_version="^4.17.0", target_version="4.18.2")
    assert item.package_name == "express"
    assert item.priority == 0
    assert item.fixes_vulnerabilities is False

    batch = UpdateBatch(id="batch-1", packages=[item], priority=100)
    assert batch.estimated_risk == "low"
    assert batch.package_names == ["express"]


def test_plan_item_from_dict_defaults():
    """Missing optional fields fall back to defaults."""
    item = PlanItem.from_dict({
        "package_name": "lodash",
        "current_version": "4.17.0",
        "target_version": "4.17.21",
    })
    assert item.priority == 0
    assert item.reason == ""
    assert item.to_dict()["target_version"] == "4.17.21"
