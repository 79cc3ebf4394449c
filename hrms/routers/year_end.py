import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from hrms.core.limiter import limiter
from hrms.dependencies import get_year_end_closer
from hrms.schemas.leave import YearEndRunRequest, YearEndRunResponse
from hrms.services.year_end import YearEndCloser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/year-end", tags=["year-end"])


@router.post("/run", response_model=YearEndRunResponse)
@limiter.limit("5/minute")
def run_year_end(
    request: Request,
    payload: Optional[YearEndRunRequest] = None,
    closer: YearEndCloser = Depends(get_year_end_closer),
):
    target_year = payload.target_year if payload else None
    logger.info("Starting Year End Leave Processing...")
    summary = closer.run(target_year)
    return YearEndRunResponse(message="Year End Processing Completed", details=summary.to_dict())
