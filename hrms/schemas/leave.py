from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from typing import Any, Dict, List, Optional


class LeaveStatusUpdate(BaseModel):
    leave_id: int
    status: str = Field(..., description="Approved, Rejected or Cancelled")
    emp_id: str
    comments: Optional[str] = ""


class LeaveHistoryQuery(BaseModel):
    emp_id: str
    date: date


class PendingLeave(BaseModel):
    leave_id: int
    ltype: str
    fdate: date
    tdate: date
    comment: Optional[str] = None
    document_path: Optional[str] = None
    no_of_days: float
    shift_type: Optional[str] = None
    l_status: str
    emp_name: Optional[str] = None


class LeaveRuleResponse(BaseModel):
    leave_type: str
    annual_limit: float
    max_per_request: Optional[float] = None
    min_per_request: Optional[float] = None
    is_default: bool = False

    model_config = ConfigDict(from_attributes=True)


class LeaveConfigurationResponse(BaseModel):
    category: str
    rules: List[LeaveRuleResponse]


class LeaveBalanceResponse(BaseModel):
    meta: Dict[str, Any]
    leaves: Dict[str, Dict[str, Any]]


class YearEndRunRequest(BaseModel):
    target_year: Optional[int] = Field(default=None, ge=2000, le=2100)


class YearEndRunResponse(BaseModel):
    message: str
    details: Dict[str, Any]
