from typing import Optional

from fastapi import APIRouter, Depends

from tillpoint.db.session import Till, get_till, settings
from tillpoint.schemas import DaySessionRead, RecoveryRequest, StartSessionRequest
from tillpoint.services.day_sessions import SessionManager
from tillpoint.services.recovery import RecoveryReconciler
from tillpoint.services.snapshot import SnapshotExporter

router = APIRouter()


def get_exporter() -> SnapshotExporter:
    return SnapshotExporter(settings.BACKUP_DIR)


def get_manager(
    till: Till = Depends(get_till),
    exporter: SnapshotExporter = Depends(get_exporter),
) -> SessionManager:
    return SessionManager(till, exporter)


@router.get("/active", response_model=Optional[DaySessionRead])
def active_session(manager: SessionManager = Depends(get_manager)):
    return manager.active_session()


@router.get("/active/status")
def is_day_active(manager: SessionManager = Depends(get_manager)):
    return {"active": manager.is_day_active()}


@router.post("/start", response_model=DaySessionRead)
def start_session(req: StartSessionRequest, manager: SessionManager = Depends(get_manager)):
    return manager.start_session(req.staff_id)


@router.post("/close", response_model=DaySessionRead)
def close_session(manager: SessionManager = Depends(get_manager)):
    return manager.close_session()


@router.post("/recover", response_model=DaySessionRead)
def recover_session(req: RecoveryRequest, till: Till = Depends(get_till)):
    return RecoveryReconciler(till).create_closed_session_for_date(req.date, staff_id=req.staff_id)
