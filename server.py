"""
Sprout Web Server

FastAPI server exposing the child health data engine.
"""

import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import pydantic
from pydantic import BaseModel, Field

# Setup paths
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from knowledge.growth import classify, describe_percentile, load_table
from src.auth import get_current_user, AuthenticatedUser
from src.config import get_settings
from src.db.repositories import ChildRepository, GrowthRecordRepository, TimelineEventRepository
from src.db.stores import SupabaseChildStore, SupabaseGrowthRecordSink
from src.errors import (
    InvalidArgument,
    NotFound,
    PermissionDenied,
    TrackerError,
    Unauthenticated,
    Unknown,
    ValidationError,
)
from src.growth import GrowthRecordService, age_in_months
from src.models import (
    Child,
    ChildDraft,
    ChildPatch,
    Gender,
    MeasurementInput,
    TimelineEvent,
    TimelineEventDraft,
    TimelineEventPatch,
)
from src.roster import RosterStore, sort_snapshot
from src.timeline import TimelineCriteria, TimelineView, build_view

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Sprout",
    description="Sprout - Child Health Data Engine API",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


ERROR_STATUS: dict[type, int] = {
    ValidationError: 400,
    InvalidArgument: 400,
    Unauthenticated: 401,
    PermissionDenied: 403,
    NotFound: 404,
}


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    status_code = ERROR_STATUS.get(type(exc), 502)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.user_message},
    )


# Request/Response models
class PercentileRequest(BaseModel):
    """Request model for percentile scoring."""
    height: float = Field(gt=0, description="Height in cm")
    weight: float = Field(gt=0, description="Weight in kg")
    gender: Gender
    age_in_months: Optional[int] = Field(None, ge=0, description="Age in whole months")
    date_of_birth: Optional[date] = Field(None, description="Used when age_in_months is not given")


class PercentileResponse(BaseModel):
    age_in_months: int
    height_percentile: float
    weight_percentile: float
    height_description: str
    weight_description: str
    status: str
    message: str
    severity_color: str


class TimelineQuery(BaseModel):
    """Events plus the criteria to apply to them."""
    events: list[TimelineEvent]
    criteria: TimelineCriteria = Field(default_factory=TimelineCriteria)
    now: Optional[datetime] = None


class GrowthRecordRequest(BaseModel):
    child_id: str
    measurement: MeasurementInput


def _event_summary(event: TimelineEvent) -> dict[str, Any]:
    data = event.model_dump(mode="json")
    data["label"] = event.style.label
    data["icon"] = event.style.icon
    data["color"] = event.style.color
    data["severity_color"] = event.severity_color
    return data


def _roster_for(user: AuthenticatedUser) -> RosterStore:
    """A roster loaded with the parent's current children for one request."""
    repository = ChildRepository(use_admin=True)
    store = RosterStore(SupabaseChildStore(repository), user)
    rows = repository.get_by_parent(user.id)
    store.apply_snapshot(sort_snapshot(Child.from_db(row) for row in rows))
    return store


def _growth_sink() -> SupabaseGrowthRecordSink:
    # Ownership is checked against the roster before anything is written
    return SupabaseGrowthRecordSink(GrowthRecordRepository(use_admin=True))


def _timeline_repository() -> TimelineEventRepository:
    return TimelineEventRepository(use_admin=True)


def _require_child(user: AuthenticatedUser, child_id: str) -> Child:
    child = _roster_for(user).get(child_id)
    if child is None:
        raise NotFound(f"No child with id {child_id}")
    return child


def _require_event(repository: TimelineEventRepository, child: Child, event_id: str) -> dict[str, Any]:
    row = repository.get_by_id(event_id)
    if row is None or str(row["child_id"]) != child.id or str(row["parent_id"]) != child.parent_id:
        raise NotFound(f"No timeline event with id {event_id}", "That timeline event no longer exists.")
    return row


def _timeline_write(operation: str, fn, *args):
    try:
        return fn(*args)
    except TrackerError:
        raise
    except Exception as e:
        logger.exception("Timeline %s failed", operation)
        raise Unknown(str(e), f"Failed to {operation} timeline event: {e}") from e


def _view_response(view: TimelineView) -> dict[str, Any]:
    return {
        "total": view.total,
        "matched": len(view.events),
        "groups": [
            {"date": day, "events": [_event_summary(e) for e in events]}
            for day, events in view.groups
        ],
        "unresolved": [_event_summary(e) for e in view.unresolved],
        "follow_ups": [_event_summary(e) for e in view.follow_ups],
    }


# Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.post("/api/growth/percentiles", response_model=PercentileResponse)
async def growth_percentiles(request: PercentileRequest):
    """Score a height/weight pair and assess it."""
    if request.age_in_months is not None:
        age = request.age_in_months
    elif request.date_of_birth is not None:
        age = age_in_months(request.date_of_birth, date.today())
    else:
        raise ValidationError("Provide age_in_months or date_of_birth")

    table = load_table(get_settings().growth_reference)
    height_p = table.percentile(request.height, age, request.gender, "height")
    weight_p = table.percentile(request.weight, age, request.gender, "weight")
    assessment = classify(height_p, weight_p)

    return PercentileResponse(
        age_in_months=age,
        height_percentile=round(height_p, 1),
        weight_percentile=round(weight_p, 1),
        height_description=describe_percentile(height_p, "height"),
        weight_description=describe_percentile(weight_p, "weight"),
        status=assessment.status.value,
        message=assessment.message,
        severity_color=assessment.severity_color.value,
    )


@app.post("/api/timeline/query")
async def timeline_query(query: TimelineQuery):
    """Filter and group a child's timeline events."""
    view = build_view(
        query.events,
        query.criteria,
        now=query.now,
        horizon_days=get_settings().follow_up_horizon_days,
    )
    return _view_response(view)


@app.get("/api/children")
async def list_children(user: AuthenticatedUser = Depends(get_current_user)):
    """List the current parent's children, newest first."""
    store = _roster_for(user)
    return {
        "selected_id": store.selected_id,
        "children": [c.model_dump(mode="json") for c in store.children],
    }


@app.post("/api/children", status_code=202)
async def add_child(draft: ChildDraft, user: AuthenticatedUser = Depends(get_current_user)):
    """
    Create a child profile.

    The profile appears in the roster once the store reports it.
    """
    child_id = _roster_for(user).add(draft)
    return {"status": "accepted", "id": child_id}


@app.patch("/api/children/{child_id}")
async def update_child(child_id: str, patch: ChildPatch, user: AuthenticatedUser = Depends(get_current_user)):
    """Update a child profile."""
    _roster_for(user).update(child_id, patch)
    return {"status": "accepted", "id": child_id}


@app.delete("/api/children/{child_id}")
async def delete_child(child_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    """Delete a child profile."""
    _roster_for(user).remove(child_id)
    return {"status": "deleted", "id": child_id}


@app.post("/api/growth/records")
async def add_growth_record(request: GrowthRecordRequest, user: AuthenticatedUser = Depends(get_current_user)):
    """Record a measurement for one of the parent's children."""
    child = _require_child(user, request.child_id)

    service = GrowthRecordService(_growth_sink())
    record = service.record(child, request.measurement)
    assessment = service.assess(record)
    return {
        "record": record.model_dump(mode="json"),
        "assessment": {
            "status": assessment.status.value,
            "message": assessment.message,
            "severity_color": assessment.severity_color.value,
        },
    }


@app.get("/api/children/{child_id}/timeline")
async def child_timeline(
    child_id: str,
    search: str = "",
    event_type: str = Query("all", alias="type"),
    severity: str = "all",
    date_range: str = "all",
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Load a child's stored timeline and filter and group it."""
    child = _require_child(user, child_id)
    try:
        criteria = TimelineCriteria(
            search_text=search,
            type=event_type,
            severity=severity,
            date_range=date_range,
            custom_start=custom_start,
            custom_end=custom_end,
        )
    except pydantic.ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ValidationError(f"Invalid timeline filter: {', '.join(fields)}") from e

    rows = _timeline_repository().get_by_child(child.id, child.parent_id)
    view = build_view(
        [TimelineEvent.from_db(row) for row in rows],
        criteria,
        horizon_days=get_settings().follow_up_horizon_days,
    )
    return _view_response(view)


@app.post("/api/children/{child_id}/timeline", status_code=201)
async def add_timeline_event(
    child_id: str,
    draft: TimelineEventDraft,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Add an event to a child's timeline."""
    child = _require_child(user, child_id)
    row = _timeline_write("add", _timeline_repository().create, child.id, child.parent_id, draft)
    if row is None:
        raise Unknown("Insert returned no row", "Failed to add timeline event")
    logger.info("Added timeline event %s for child %s", row["id"], child.id)
    return _event_summary(TimelineEvent.from_db(row))


@app.patch("/api/children/{child_id}/timeline/{event_id}")
async def update_timeline_event(
    child_id: str,
    event_id: str,
    patch: TimelineEventPatch,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """Update one of a child's timeline events."""
    child = _require_child(user, child_id)
    repository = _timeline_repository()
    _require_event(repository, child, event_id)

    changes = patch.changes()
    for required in ("type", "title", "date"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be empty")

    row = _timeline_write("update", repository.update, event_id, changes)
    if row is None:
        raise NotFound(f"No timeline event with id {event_id}", "That timeline event no longer exists.")
    return _event_summary(TimelineEvent.from_db(row))


@app.delete("/api/children/{child_id}/timeline/{event_id}")
async def delete_timeline_event(child_id: str, event_id: str, user: AuthenticatedUser = Depends(get_current_user)):
    """Delete one of a child's timeline events."""
    child = _require_child(user, child_id)
    repository = _timeline_repository()
    _require_event(repository, child, event_id)
    _timeline_write("delete", repository.delete, event_id)
    return {"status": "deleted", "id": event_id}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
