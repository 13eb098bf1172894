from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import StreamingResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from berthboard.api.state import (
    get_auth_service,
    get_current_user,
    get_optional_user,
    get_reference,
    get_store,
    get_token,
)
from berthboard.config import settings
from berthboard.database import get_db
from berthboard.models.base import VesselStatusEnum, VesselTypeEnum
from berthboard.modules.auth_service import AuthError, AuthService, TenantAccessError
from berthboard.modules.conflict_detector import (
    detect_all_conflicts,
    detect_conflicts,
    has_blocking_conflicts,
)
from berthboard.modules.export import EXPORT_FORMATS, iter_csv, vessels_to_json
from berthboard.modules.metrics import compute_metrics
from berthboard.modules.navigation import build_navigation, can_access
from berthboard.modules.reference_data import ReferenceData
from berthboard.modules.timeline import build_timeline
from berthboard.modules.vessel_store import VesselStore, sort_by_eta
from berthboard.modules.vessel_validator import generate_voyage_number, validate_vessel
from berthboard.schemas.auth import LoginRequest, SwitchTenantRequest
from berthboard.schemas.metrics import MetricsWindow
from berthboard.schemas.reference import User
from berthboard.schemas.results import StoreResult
from berthboard.schemas.vessel import (
    ConflictCheckRequest,
    Vessel,
    VesselDraftRequest,
    VesselRescheduleRequest,
    VesselUpdateRequest,
)
from berthboard.utils.dates import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_STATUS = {"validation": 422, "not_found": 404, "persistence": 500}


def _raise_for_result(result: StoreResult) -> None:
    """Map a failed store result onto an HTTP error."""
    if result.success:
        return
    status_code = _ERROR_STATUS.get(result.error_code or "", 400)
    raise HTTPException(status_code=status_code, detail={"error": result.error, "errors": result.errors})


def _vessel_with_conflicts(vessel: Vessel, store: VesselStore) -> dict:
    conflicts = detect_conflicts(vessel, store.get_all(), store.berths)
    return {
        "vessel": vessel.model_dump(mode="json"),
        "conflicts": [c.model_dump(mode="json") for c in conflicts],
        "has_blocking_conflicts": has_blocking_conflicts(conflicts),
    }


def _tenant_terminal_ids(reference: ReferenceData, user: Optional[User]) -> Optional[set[str]]:
    if user is None:
        return None
    return {t.id for t in reference.terminals_for_tenant(user.tenant_id)}


# ---------------------------------------------------------------------------
# Vessels
# ---------------------------------------------------------------------------

@router.get("/vessels", tags=["vessels"])
def list_vessels(
    terminal_id: Optional[str] = None,
    berth_id: Optional[str] = None,
    vessel_type: Optional[VesselTypeEnum] = None,
    status: Optional[VesselStatusEnum] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
    store: VesselStore = Depends(get_store),
):
    """List vessel calls ordered by ETA."""
    if date_from and date_to and ensure_utc(date_from) > ensure_utc(date_to):
        raise HTTPException(status_code=422, detail="date_from must be <= date_to")
    vessels = store.filter_vessels(
        terminal_id=terminal_id,
        berth_id=berth_id,
        vessel_type=vessel_type.value if vessel_type else None,
        status=status.value if status else None,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    vessels = sort_by_eta(vessels)
    return {"items": [v.model_dump(mode="json") for v in vessels], "total": len(vessels)}


@router.get("/vessels/stats", tags=["vessels"])
def vessel_stats(store: VesselStore = Depends(get_store)):
    return store.get_stats()


@router.get("/vessels/voyage-number", tags=["vessels"])
def new_voyage_number(year: Optional[int] = None, store: VesselStore = Depends(get_store)):
    """Suggest an unused voyage number for the vessel form."""
    taken = [v.voyage_number for v in store.get_all()]
    return {"voyage_number": generate_voyage_number(year, taken=taken)}


@router.get("/vessels/export", tags=["vessels"])
def export_vessels(
    fmt: str = Query("csv", alias="format", description="csv or json"),
    terminal_id: Optional[str] = None,
    store: VesselStore = Depends(get_store),
):
    """Download the schedule as CSV (streamed) or JSON."""
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(status_code=422, detail=f"format must be one of {', '.join(EXPORT_FORMATS)}")
    vessels = sort_by_eta(store.filter_vessels(terminal_id=terminal_id))
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M")
    filename = f"berthboard_schedule_{stamp}.{fmt}"
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    if fmt == "json":
        return Response(content=vessels_to_json(vessels), media_type="application/json", headers=headers)
    return StreamingResponse(iter_csv(vessels), media_type="text/csv", headers=headers)


@router.post("/vessels/validate", tags=["vessels"])
def validate_vessel_draft(body: ConflictCheckRequest, store: VesselStore = Depends(get_store)):
    """Dry-run validation for the vessel form. Nothing is saved."""
    draft = body.model_dump(exclude={"exclude_voyage_number"})
    result = validate_vessel(
        draft,
        store.get_all(),
        is_update=body.exclude_voyage_number is not None,
        exclude_voyage_number=body.exclude_voyage_number,
        terminals=store.terminals or None,
        berths=store.berths or None,
    )
    return result.model_dump()


@router.post("/vessels/check-conflicts", tags=["vessels"])
def check_conflicts(body: ConflictCheckRequest, store: VesselStore = Depends(get_store)):
    """Scheduling conflicts the draft would have if saved."""
    draft = body.model_dump(exclude={"exclude_voyage_number"})
    conflicts = detect_conflicts(
        draft, store.get_all(), store.berths, exclude_voyage_number=body.exclude_voyage_number,
    )
    return {
        "conflicts": [c.model_dump(mode="json") for c in conflicts],
        "has_blocking_conflicts": has_blocking_conflicts(conflicts),
    }


@router.post("/vessels", tags=["vessels"], status_code=201)
def create_vessel(body: VesselDraftRequest, store: VesselStore = Depends(get_store)):
    """Create a vessel call. Conflicts are reported but do not block the save."""
    result = store.create(body)
    _raise_for_result(result)
    return _vessel_with_conflicts(result.data, store)


@router.delete("/vessels", tags=["vessels"])
def clear_vessels(store: VesselStore = Depends(get_store)):
    result = store.clear()
    _raise_for_result(result)
    return {"message": result.message}


@router.get("/vessels/{voyage_number}", tags=["vessels"])
def get_vessel(voyage_number: str, store: VesselStore = Depends(get_store)):
    vessel = store.get_by_voyage_number(voyage_number)
    if vessel is None:
        raise HTTPException(status_code=404, detail="Vessel not found")
    return _vessel_with_conflicts(vessel, store)


@router.patch("/vessels/{voyage_number}", tags=["vessels"])
def update_vessel(voyage_number: str, body: VesselUpdateRequest, store: VesselStore = Depends(get_store)):
    """Partial update; only fields present in the body change."""
    result = store.update(voyage_number, body)
    _raise_for_result(result)
    return _vessel_with_conflicts(result.data, store)


@router.post("/vessels/{voyage_number}/reschedule", tags=["vessels"])
def reschedule_vessel(
    voyage_number: str,
    body: VesselRescheduleRequest,
    store: VesselStore = Depends(get_store),
    reference: ReferenceData = Depends(get_reference),
):
    """Move a call in time and/or onto another berth (timeline drag and drop)."""
    patch = body.model_dump(exclude_unset=True)
    if patch.get("berth_id") and not patch.get("terminal_id"):
        berth = reference.get_berth(patch["berth_id"])
        if berth is not None:
            patch["terminal_id"] = berth.terminal_id
    result = store.update(voyage_number, patch)
    _raise_for_result(result)
    return _vessel_with_conflicts(result.data, store)


@router.delete("/vessels/{voyage_number}", tags=["vessels"])
def delete_vessel(voyage_number: str, store: VesselStore = Depends(get_store)):
    result = store.delete(voyage_number)
    _raise_for_result(result)
    return {"message": result.message}


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

@router.get("/conflicts", tags=["planning"])
def list_conflicts(terminal_id: Optional[str] = None, store: VesselStore = Depends(get_store)):
    """Schedule-wide conflict scan. Each overlap is reported from both sides."""
    vessels = store.get_all()
    conflicts = detect_all_conflicts(vessels, store.berths)
    if terminal_id:
        in_terminal = {v.voyage_number for v in vessels if v.terminal_id == terminal_id}
        conflicts = [c for c in conflicts if c.voyage_number in in_terminal]
    return {
        "items": [c.model_dump(mode="json") for c in conflicts],
        "total": len(conflicts),
        "blocking": sum(1 for c in conflicts if c.severity.value == "error"),
    }


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

@router.get("/terminals", tags=["reference"])
def list_terminals(
    reference: ReferenceData = Depends(get_reference),
    user: Optional[User] = Depends(get_optional_user),
):
    """Terminals, limited to the session tenant when a token is sent."""
    terminals = reference.terminals_for_tenant(user.tenant_id if user else None)
    return [t.model_dump() for t in terminals]


@router.get("/berths", tags=["reference"])
def list_berths(
    terminal_id: Optional[str] = None,
    active_only: bool = False,
    reference: ReferenceData = Depends(get_reference),
    user: Optional[User] = Depends(get_optional_user),
):
    berths = reference.berths_for_terminal(terminal_id, active_only=active_only)
    allowed = _tenant_terminal_ids(reference, user)
    if allowed is not None:
        berths = [b for b in berths if b.terminal_id in allowed]
    return [b.model_dump() for b in berths]


# ---------------------------------------------------------------------------
# Dashboard & timeline
# ---------------------------------------------------------------------------

@router.get("/dashboard/metrics", tags=["dashboard"])
def dashboard_metrics(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    terminal_id: Optional[str] = None,
    store: VesselStore = Depends(get_store),
    reference: ReferenceData = Depends(get_reference),
):
    """Dashboard KPIs. The utilization window defaults to the next METRICS_WINDOW_HOURS."""
    now = datetime.now(timezone.utc)
    start = start or now
    end = end or start + timedelta(hours=settings.METRICS_WINDOW_HOURS)
    window = MetricsWindow(start=start, end=end)

    vessels = store.filter_vessels(terminal_id=terminal_id) if terminal_id else store.get_all()
    berths = reference.berths_for_terminal(terminal_id, active_only=True)
    metrics = compute_metrics(vessels, berths, window, now=now)
    return {
        **metrics.model_dump(mode="json"),
        "window": window.model_dump(mode="json"),
    }


@router.get("/timeline", tags=["planning"])
def timeline(
    terminal_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    store: VesselStore = Depends(get_store),
):
    if start and end and ensure_utc(end) <= ensure_utc(start):
        raise HTTPException(status_code=422, detail="end must be after start")
    result = build_timeline(store.get_all(), store.berths, terminal_id=terminal_id, start=start, end=end)
    return result.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Auth & navigation
# ---------------------------------------------------------------------------

@router.post("/auth/login", tags=["auth"])
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        session = auth.login(body.email, body.password)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return session.model_dump(mode="json")


@router.post("/auth/logout", tags=["auth"])
def logout(token: str = Depends(get_token), auth: AuthService = Depends(get_auth_service)):
    try:
        auth.logout(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return {"message": "Logged out"}


@router.get("/auth/me", tags=["auth"])
def me(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return {
        "user": user.model_dump(),
        "tenant": auth.get_tenant(user.tenant_id).model_dump(),
    }


@router.get("/auth/tenants", tags=["auth"])
def my_tenants(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return [t.model_dump() for t in auth.get_user_tenants(user.id)]


@router.post("/auth/switch-tenant", tags=["auth"])
def switch_tenant(
    body: SwitchTenantRequest,
    token: str = Depends(get_token),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        session = auth.switch_tenant(token, body.tenant_id)
    except TenantAccessError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return session.model_dump(mode="json")


@router.get("/navigation", tags=["auth"])
def navigation(path: Optional[str] = None, user: User = Depends(get_current_user)):
    """Menu for the session user's role; with ``path``, also whether it may be opened."""
    payload = {
        "role": user.role.value,
        "items": [item.model_dump() for item in build_navigation(user.role)],
    }
    if path is not None:
        payload["can_access"] = can_access(user.role, path)
    return payload


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------

@router.get("/health", tags=["system"])
def health_check(store: VesselStore = Depends(get_store), db: Session = Depends(get_db)):
    """Health check with storage status and DB latency (SQL backend only)."""
    storage = {
        "backend": settings.STORAGE_BACKEND,
        "key": settings.STORAGE_KEY,
        "vessels": len(store.get_all()),
        "load_error": store.load_error,
    }
    if settings.STORAGE_BACKEND == "sql":
        t0 = time.time()
        try:
            db.execute(text("SELECT 1"))
            storage["database"] = "ok"
        except SQLAlchemyError as e:
            storage["database"] = f"error: {e}"
        storage["latency_ms"] = round((time.time() - t0) * 1000, 1)

    return {"status": "ok" if store.load_error is None else "degraded", "storage": storage}
