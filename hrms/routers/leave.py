import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from hrms.core import dates
from hrms.core.exceptions import NotFoundError, ValidationFailed
from hrms.core.schemas import CommandResponse, ListingResponse
from hrms.dependencies import (
    get_directory,
    get_document_store,
    get_leave_config,
    get_ledger,
    get_report_service,
    get_workflow,
)
from hrms.schemas.leave import (
    LeaveBalanceResponse,
    LeaveConfigurationResponse,
    LeaveHistoryQuery,
    LeaveRuleResponse,
)
from hrms.services.balance_ledger import BalanceLedger
from hrms.services.document_store import LocalDocumentStore
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_calculator import EvaluationOutcome, LeaveRequest
from hrms.services.leave_config import LeaveConfigurationProvider
from hrms.services.leave_report import ALL_STATUSES, LeaveReportService
from hrms.services.leave_workflow import ApplicationWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave", tags=["leave"])


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.post("/apply", response_model=CommandResponse)
async def apply_leave(
    emp_id: str = Form(...),
    ltype: str = Form(...),
    fromdate: date = Form(...),
    todate: Optional[date] = Form(None),
    is_half_day: bool = Form(False),
    shift_type: Optional[str] = Form(None),
    comments: Optional[str] = Form(""),
    document: Optional[UploadFile] = File(None),
    workflow: ApplicationWorkflow = Depends(get_workflow),
    documents: LocalDocumentStore = Depends(get_document_store),
):
    if todate is None and not is_half_day:
        raise ValidationFailed("todate is required", field="todate")

    document_path = None
    if document is not None and document.filename:
        document_path = await documents.save(document)

    leave_request = LeaveRequest(
        employee_code=emp_id,
        leave_type=ltype,
        from_date=fromdate,
        to_date=todate or fromdate,
        is_half_day=is_half_day,
        shift_type=shift_type,
        comment=comments,
        has_document=document_path is not None,
    )
    try:
        # Row lock and queries are blocking; keep them off the event loop
        result = await run_in_threadpool(workflow.submit, leave_request, document_path=document_path)
    except Exception:
        documents.discard(document_path)
        raise

    if not result.ok:
        documents.discard(document_path)
        body = CommandResponse.fail(result.message).model_dump()
        if result.outcome == EvaluationOutcome.NOT_FOUND:
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body)
        return body

    return CommandResponse.ok(
        result.message,
        data={"leave_id": result.application.leave_id, "no_of_days": result.deductible_days},
    )


@router.post("/history", response_model=ListingResponse[dict])
def leave_history(
    query: LeaveHistoryQuery,
    request: Request,
    reports: LeaveReportService = Depends(get_report_service),
):
    rows = reports.history_for_month(query.emp_id, query.date, base_url=_base_url(request))
    return ListingResponse[dict].found(rows)


@router.get("/all/{emp_id}", response_model=ListingResponse[dict])
def all_leaves(emp_id: str, reports: LeaveReportService = Depends(get_report_service)):
    return ListingResponse[dict].found(reports.all_for_employee(emp_id))


@router.get("/balance", response_model=LeaveBalanceResponse)
def leave_balance(
    emp_id: str = Query(...),
    on: Optional[date] = Query(None, alias="date"),
    directory: EmployeeDirectory = Depends(get_directory),
    ledger: BalanceLedger = Depends(get_ledger),
):
    employee = directory.resolve(emp_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    snapshot = ledger.compute_snapshot(employee, on or dates.today())
    return snapshot.to_dict()


@router.get("/configuration/{category}", response_model=LeaveConfigurationResponse)
def leave_configuration(category: str, leave_config: LeaveConfigurationProvider = Depends(get_leave_config)):
    rules = leave_config.get_rules(category)
    return LeaveConfigurationResponse(
        category=category,
        rules=[LeaveRuleResponse.model_validate(rule) for rule in rules],
    )


@router.get("/report")
def leave_report(
    emp_id: str = Query(...),
    from_date: date = Query(...),
    to_date: date = Query(...),
    status_filter: str = Query(ALL_STATUSES, alias="status"),
    output_format: str = Query("json", alias="format", pattern="^(json|csv)$"),
    reports: LeaveReportService = Depends(get_report_service),
):
    rows = reports.generate_report(emp_id, from_date, to_date, status_filter)
    if output_format == "csv":
        filename = f"Leave_Report_{dates.today().isoformat()}.csv"
        return Response(
            content=reports.to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return rows
