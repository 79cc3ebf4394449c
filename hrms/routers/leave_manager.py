import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request

from hrms.core.schemas import CommandResponse
from hrms.dependencies import get_document_store, get_workflow
from hrms.schemas.leave import LeaveStatusUpdate, PendingLeave
from hrms.services.document_store import LocalDocumentStore
from hrms.services.leave_workflow import ApplicationWorkflow, parse_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave", tags=["leave-manager"])


@router.get("/manager", response_model=List[PendingLeave])
def pending_approvals(
    request: Request,
    emp_id: str = Query(...),
    workflow: ApplicationWorkflow = Depends(get_workflow),
    documents: LocalDocumentStore = Depends(get_document_store),
):
    """Manager dashboard: team applications awaiting first approval; directors also see the second-level queue."""
    base_url = str(request.base_url).rstrip("/")
    return [
        PendingLeave(
            leave_id=app.leave_id,
            ltype=app.ltype,
            fdate=app.fdate,
            tdate=app.tdate,
            comment=app.comment,
            document_path=documents.url_for(app.document_path, base_url),
            no_of_days=app.no_of_days,
            shift_type=app.shift_type,
            l_status=app.l_status,
            emp_name=app.employee.ename if app.employee else None,
        )
        for app in workflow.list_pending_approvals(emp_id)
    ]


@router.post("/update-status", response_model=CommandResponse)
def update_status(
    update: LeaveStatusUpdate,
    workflow: ApplicationWorkflow = Depends(get_workflow),
):
    action = parse_action(update.status)
    result = workflow.transition(update.leave_id, update.emp_id, action, update.comments)
    return CommandResponse.ok(
        result.message,
        data={
            "leave_id": result.leave_id,
            "previous_status": result.previous_status.value,
            "status": result.new_status.value,
        },
    )
