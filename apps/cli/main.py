"""CLI application for DepShift."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from core.manifest import RESTORE_MODES
from core.models import AnalysisResult, ExecutionSummary, PlanItem, UpdateBatch
from core.orchestrator import create_orchestrator, describe_findings
from core.planner import BatchPlanner

console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Send library logging to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_plan_items(path: Path) -> list[PlanItem]:
    """Read plan items from a JSON file.

    Accepts a list of items or an object with an "items" list.
    """
    data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of plan items")
    return [PlanItem.from_dict(entry) for entry in data]


def format_batch_table(batches: list[UpdateBatch]) -> Table:
    table = Table(title="Update batches")
    table.add_column("#", justify="right")
    table.add_column("Batch")
    table.add_column("Priority", justify="right")
    table.add_column("Risk")
    table.add_column("Packages")

    for index, batch in enumerate(batches, start=1):
        packages = ", ".join(
            f"{item.package_name} {item.current_version} -> {item.target_version}"
            for item in batch.packages
        )
        table.add_row(str(index), batch.id, str(batch.priority), batch.estimated_risk, packages)

    return table


def format_json_output(analysis: AnalysisResult, summary: ExecutionSummary | None) -> str:
    """Format analysis and execution results as JSON."""
    output = {
        "findings": describe_findings(analysis),
        "batches": [batch.to_dict() for batch in analysis.update_batches],
    }

    if summary is not None:
        output["overall_success"] = summary.overall_success
        output["successful_updates"] = [item.package_name for item in summary.successful_updates]
        output["failed_updates"] = [
            {"name": failure.item.package_name, "error": failure.error}
            for failure in summary.failed_updates
        ]
        output["manual_review"] = [result.package_name for result in summary.manual_intervention_required]
        output["batch_results"] = [
            {
                "batch": result.batch.id,
                "success": result.success,
                "install_flags_used": result.install_flags_used,
                "error": result.error.error_type.value if result.error else None,
            }
            for result in summary.batch_results
        ]

    return json.dumps(output, indent=2)


def print_summary(analysis: AnalysisResult, summary: ExecutionSummary | None) -> None:
    for line in describe_findings(analysis):
        console.print(line, style="yellow")

    console.print(format_batch_table(analysis.update_batches))

    if summary is None:
        return

    for item in summary.successful_updates:
        console.print(f"✓ {item.package_name}@{item.target_version}", style="green")
    for failure in summary.failed_updates:
        console.print(f"✗ {failure.item.package_name}@{failure.item.target_version}: {failure.error}", style="red")
    for result in summary.manual_intervention_required:
        console.print(f"! {result.package_name} requires manual code review", style="yellow")

    console.print(
        f"{len(summary.successful_updates)} updated, {len(summary.failed_updates)} failed"
    )


app = typer.Typer(
    name="depshift",
    help="DepShift - Apply dependency updates to package.json in safe batches",
    add_completion=False,
)


@app.command()
def plan(
    items_file: Path = typer.Argument(help="JSON file with plan items"),
    max_batch_size: int = typer.Option(10, "--max-batch-size", envvar="DEPSHIFT_MAX_BATCH_SIZE", help="Maximum packages per batch"),
    format_type: str = typer.Option("table", "--format", help="Output format: table or json"),
) -> None:
    """Show how plan items would be grouped and ordered."""
    try:
        if not items_file.exists():
            console.print(f"Error: File {items_file} not found", style="red")
            raise typer.Exit(1)

        items = load_plan_items(items_file)
        planner = BatchPlanner(max_batch_size=max_batch_size)
        batches = planner.reorder_for_safety(planner.create_batches(items))

        if format_type == "json":
            typer.echo(json.dumps({"batches": [batch.to_dict() for batch in batches]}, indent=2))
        elif not batches:
            console.print("No updates to plan")
        else:
            console.print(format_batch_table(batches))

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


@app.command()
def apply(
    project_dir: Path = typer.Argument(help="Project directory containing package.json"),
    items_file: Path = typer.Argument(help="JSON file with plan items"),
    max_batch_size: int = typer.Option(10, "--max-batch-size", envvar="DEPSHIFT_MAX_BATCH_SIZE", help="Maximum packages per batch"),
    installer: str = typer.Option("npm", "--installer", envvar="DEPSHIFT_INSTALLER", help="Package manager executable"),
    restore: str = typer.Option("snapshot", "--restore", envvar="DEPSHIFT_RESTORE", help="Manifest restore mode: snapshot or git"),
    registry: Path | None = typer.Option(None, "--registry", envvar="DEPSHIFT_REGISTRY", help="Package replacement registry JSON"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Analyze and plan without installing"),
    format_type: str = typer.Option("text", "--format", help="Output format: text or json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Apply plan items to a project, batch by batch."""
    configure_logging(verbose)

    try:
        if not (project_dir / "package.json").exists():
            console.print(f"Error: No package.json in {project_dir}", style="red")
            raise typer.Exit(1)
        if not items_file.exists():
            console.print(f"Error: File {items_file} not found", style="red")
            raise typer.Exit(1)
        if restore not in RESTORE_MODES:
            console.print(f"Error: Unknown restore mode: {restore}", style="red")
            raise typer.Exit(1)

        items = load_plan_items(items_file)
        orchestrator = create_orchestrator(
            max_batch_size=max_batch_size,
            installer=installer,
            restore=restore,
            registry_path=registry,
        )

        analysis = asyncio.run(orchestrator.analyze(project_dir, items))
        summary = None if dry_run else asyncio.run(orchestrator.execute(project_dir, analysis))

        if format_type == "json":
            typer.echo(format_json_output(analysis, summary))
        else:
            print_summary(analysis, summary)

        if summary is not None and not summary.overall_success:
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
