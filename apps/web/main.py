"""FastAPI web application for DepShift."""

from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from core.errors import classify_install_output
from core.models import PlanItem
from core.planner import BatchPlanner

app = FastAPI(
    title="DepShift",
    description="Plan and classify batched dependency updates for package.json",
    version="0.1.0",
)


class PlanItemModel(BaseModel):
    """A proposed package version change."""
    package_name: str
    current_version: str
    target_version: str
    priority: int = 0
    reason: str = ""
    fixes_vulnerabilities: bool = False
    vulnerability_count: int = 0


class PlanRequest(BaseModel):
    """Request model for planning update batches."""
    items: list[PlanItemModel]
    max_batch_size: int = 10


class PlanResponse(BaseModel):
    """Response model with safety-ordered batches."""
    batches: list[dict]
    total_packages: int


class ClassifyRequest(BaseModel):
    """Request model for classifying installer output."""
    output: str


class ClassifyResponse(BaseModel):
    """Response model for an installer error classification."""
    error_type: str
    message: str
    conflicting_package: Optional[str] = None


@app.get("/", response_class=HTMLResponse)
async def home():
    """Serve the landing page."""
    return get_index_html()


@app.post("/api/plan", response_model=PlanResponse)
async def plan_batches(request: PlanRequest):
    """Group plan items into ordered update batches."""
    try:
        if request.max_batch_size < 1:
            raise HTTPException(status_code=400, detail="max_batch_size must be at least 1")

        names = [item.package_name for item in request.items]
        if len(names) != len(set(names)):
            raise HTTPException(status_code=400, detail="Package names must be unique")

        items = [PlanItem(**item.model_dump()) for item in request.items]
        planner = BatchPlanner(max_batch_size=request.max_batch_size)
        batches = planner.reorder_for_safety(planner.create_batches(items))

        return PlanResponse(
            batches=[batch.to_dict() for batch in batches],
            total_packages=len(items),
        )

    except HTTPException:
        # Re-raise HTTP exceptions (don't convert to 500)
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error planning batches: {str(e)}")


@app.post("/api/classify", response_model=ClassifyResponse)
async def classify_output(request: ClassifyRequest):
    """Classify captured installer output."""
    error = classify_install_output(request.output)
    return ClassifyResponse(
        error_type=error.error_type.value,
        message=error.message,
        conflicting_package=error.conflicting_package,
    )


def get_index_html() -> str:
    """Return the landing page."""
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>DepShift - Batched Dependency Updates</title>
        <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.0/dist/css/bootstrap.min.css" rel="stylesheet">
    </head>
    <body>
        <div class="container py-5">
            <h1 class="display-5 fw-bold text-primary">DepShift</h1>
            <p class="lead text-muted">Plan package.json updates in safe, prioritized batches</p>
            <ul class="list-group">
                <li class="list-group-item"><code>POST /api/plan</code> group plan items into ordered batches</li>
                <li class="list-group-item"><code>POST /api/classify</code> classify npm install output</li>
                <li class="list-group-item"><a href="/docs">API documentation</a></li>
            </ul>
        </div>
    </body>
    </html>
    """
