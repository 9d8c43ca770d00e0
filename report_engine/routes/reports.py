"""Report routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from report_engine.errors import InsufficientData, ReportError, UnknownReportKind
from report_engine.schemas.report import (
    EnqueueResult,
    QueueStatus,
    Report,
    ReportStatus,
    ReportSummary,
    ReportVersionInfo,
    VersionComparison,
)
from report_engine.services.orchestrator import ReportOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


def get_orchestrator(request: Request) -> ReportOrchestrator:
    """Orchestrator of the engine built at application startup."""
    return request.app.state.engine.orchestrator


def _raise_http(error: Exception):
    """Map engine errors to HTTP errors; internal detail is only logged."""
    if isinstance(error, UnknownReportKind):
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InsufficientData):
        detail = error.to_dict()
        detail["missing_forms"] = error.missing_forms
        raise HTTPException(status_code=409, detail=detail)
    if isinstance(error, ReportError):
        raise HTTPException(status_code=503, detail=error.to_dict())
    raise error


@router.get("/reports/{subject}", response_model=List[ReportSummary])
def list_reports(subject: str, orchestrator: ReportOrchestrator = Depends(get_orchestrator)):
    """List the current report of every kind for a subject."""
    return orchestrator.list_reports(subject)


@router.get("/reports/{subject}/{kind}", response_model=Report)
def get_report(subject: str, kind: str, orchestrator: ReportOrchestrator = Depends(get_orchestrator)):
    """
    Fetch the current report without generating.

    Returns 404 when no published version exists; poll the status endpoint
    after enqueueing.
    """
    try:
        report = orchestrator.fetch_existing(subject, kind)
    except UnknownReportKind as e:
        _raise_http(e)
    if report is None:
        raise HTTPException(status_code=404, detail=f"No {kind} report for subject {subject}")
    return report


@router.post("/reports/{subject}/{kind}/generate", response_model=Report)
def generate_report(
    subject: str,
    kind: str,
    force: bool = False,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    """Generate (or return the unchanged) report synchronously."""
    try:
        return orchestrator.generate_or_fetch(subject, kind, force_regenerate=force)
    except (ReportError, UnknownReportKind) as e:
        _raise_http(e)


@router.post("/reports/{subject}/{kind}/enqueue", response_model=EnqueueResult, status_code=202)
def enqueue_report(subject: str, kind: str, orchestrator: ReportOrchestrator = Depends(get_orchestrator)):
    """Queue a background generation."""
    try:
        return orchestrator.enqueue_generation(subject, kind)
    except (ReportError, UnknownReportKind) as e:
        _raise_http(e)


@router.get("/reports/{subject}/{kind}/status", response_model=ReportStatus)
def report_status(subject: str, kind: str, orchestrator: ReportOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.report_status(subject, kind)
    except UnknownReportKind as e:
        _raise_http(e)


@router.get("/reports/{subject}/{kind}/versions", response_model=List[ReportVersionInfo])
def report_versions(subject: str, kind: str, orchestrator: ReportOrchestrator = Depends(get_orchestrator)):
    """Version history, newest first."""
    return orchestrator.report_versions(subject, kind)


@router.get("/reports/{subject}/{kind}/versions/{version}", response_model=Report)
def report_version(
    subject: str,
    kind: str,
    version: int,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    report = orchestrator.report_version(subject, kind, version)
    if report is None:
        raise HTTPException(status_code=404, detail=f"Version {version} not found")
    return report


@router.get("/reports/{subject}/{kind}/compare", response_model=VersionComparison)
def compare_versions(
    subject: str,
    kind: str,
    v1: int,
    v2: int,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    comparison: Optional[VersionComparison] = orchestrator.compare_versions(subject, kind, v1, v2)
    if comparison is None:
        raise HTTPException(status_code=404, detail="Version not found")
    return comparison


@router.get("/queue/status", response_model=QueueStatus)
def queue_status(request: Request):
    """Number of queued report jobs."""
    return QueueStatus(pending=request.app.state.engine.queue.count())
