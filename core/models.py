"""Core data models for DepShift."""

from dataclasses import asdict, dataclass
from enum import Enum

REPLACEMENT_PRIORITY = 1000
MAJOR_PRIORITY = 500
MINOR_PATCH_PRIORITY = 100

RISK_ORDER = {"low": 0, "medium": 1, "high": 2}


@dataclass
class PlanItem:
    """A single proposed package version change."""

    package_name: str
    current_version: str
    target_version: str
    priority: int = 0  # >= 1000 marks security/replacement urgency
    reason: str = ""
    fixes_vulnerabilities: bool = False
    vulnerability_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "PlanItem":
        """Build a plan item from a JSON object."""
        return cls(
            package_name=data["package_name"],
            current_version=data["current_version"],
            target_version=data["target_version"],
            priority=int(data.get("priority", 0)),
            reason=data.get("reason", ""),
            fixes_vulnerabilities=bool(data.get("fixes_vulnerabilities", False)),
            vulnerability_count=int(data.get("vulnerability_count", 0)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class UpdateBatch:
    """An ordered group of plan items applied and installed together."""

    id: str
    packages: list[PlanItem]
    priority: int
    estimated_risk: str = "low"  # low, medium, high

    @property
    def package_names(self) -> list[str]:
        return [item.package_name for item in self.packages]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "priority": self.priority,
            "estimated_risk": self.estimated_risk,
            "packages": [item.to_dict() for item in self.packages],
        }


class ErrorType(Enum):
    """Classified cause of an installer failure."""

    PEER_DEPENDENCY_CONFLICT = "peer_dependency_conflict"
    NETWORK_ERROR = "network_error"
    BUILD_FAILURE = "build_failure"
    UNKNOWN = "unknown"


@dataclass
class InstallError:
    """Machine-readable hint derived from installer output."""

    error_type: ErrorType
    message: str
    conflicting_package: str | None = None


@dataclass
class PackageResult:
    """Outcome of installing one package in isolation."""

    item: PlanItem
    success: bool
    log: str = ""
    error: InstallError | None = None


@dataclass
class BatchExecutionResult:
    """Result of one top-level batch execution call."""

    batch: UpdateBatch
    success: bool
    log: str
    error: InstallError | None = None
    install_flags_used: list[str] | None = None
    package_results: list[PackageResult] = None

    def __post_init__(self):
        if self.package_results is None:
            self.package_results = []


class BlockingReason(Enum):
    """Why a dependency prevents the installer from completing."""

    ARCHITECTURE_INCOMPATIBLE = "architecture_incompatible"
    BUILD_FAILURE = "build_failure"
    DEAD_URL = "dead_url"


@dataclass
class PackageReplacement:
    """Mapping from a deprecated package to its modern alternative."""

    old_name: str
    new_name: str
    version_mapping: dict[str, str]
    requires_code_changes: bool = False
    code_change_description: str | None = None


@dataclass
class ArchitectureIncompatibleEntry:
    """A package without working builds on some CPU architectures."""

    package_name: str
    incompatible_architectures: list[str]
    replacement: str | None = None
    reason: str = ""


@dataclass
class BlockingDependency:
    """A dependency flagged as incompatible with the target update."""

    name: str
    version: str
    reason: BlockingReason
    replacement: PackageReplacement | None = None


@dataclass
class URLValidationResult:
    """Liveness of a URL-based dependency reference."""

    url: str
    is_valid: bool
    status_code: int | None = None
    error: str | None = None


@dataclass
class ReplacementResult:
    """A package replacement applied to the manifest."""

    package_name: str
    old_version: str
    new_version: str
    requires_manual_review: bool


@dataclass
class AnalysisResult:
    """Detections and the update plan for a project."""

    blocking_dependencies: list[BlockingDependency]
    dead_urls: list[URLValidationResult]
    replacements: list[PackageReplacement]
    update_batches: list[UpdateBatch]
    initial_plan_items: list[PlanItem]


@dataclass
class FailedUpdate:
    """A plan item that never installed successfully."""

    item: PlanItem
    error: str


@dataclass
class ExecutionSummary:
    """Aggregated outcome of executing a full update plan."""

    successful_updates: list[PlanItem]
    failed_updates: list[FailedUpdate]
    manual_intervention_required: list[ReplacementResult]
    overall_success: bool
    batch_results: list[BatchExecutionResult]
