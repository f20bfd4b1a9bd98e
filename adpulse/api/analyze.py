"""
FastAPI router module for anomaly analysis.

Thin HTTP glue over the analysis services. The caller posts the fact rows of
the target day and the baseline window; fetching them from the warehouse is
the caller's job.

Key Endpoints:
- POST /analyze - Anomaly analysis for the target day (AnalysisResponse)
- POST /analyze/daily-kpis - Per-date KPI table with target-day signals

Error Mapping:
- Request body validation errors are reported by FastAPI/pydantic (422)
- ValueError raised by the engine (malformed rows, invalid day counts) -> 422

Dependencies:
- adpulse/core/dependencies.py: SettingsDep for breakdown workers and dimensions
- adpulse/services/analysis.py: run_analysis
- adpulse/services/daily_kpis.py: build_daily_kpis
"""

import logging

from fastapi import APIRouter, HTTPException

from adpulse.core.dependencies import SettingsDep
from adpulse.models import AnalysisRequest, AnalysisResponse, DailyKpiReport
from adpulse.services.analysis import run_analysis
from adpulse.services.daily_kpis import build_daily_kpis

# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags for OpenAPI documentation
router = APIRouter(prefix="/analyze", tags=["analyze"])


# =============================================================================
# Analysis Endpoints
# =============================================================================


@router.post("", response_model=AnalysisResponse)
def analyze(
    request: AnalysisRequest,
    settings: SettingsDep,
) -> AnalysisResponse:
    """
    Detect anomalies for the target day.

    Declared as a plain function so FastAPI runs the pandas work in its
    threadpool instead of on the event loop.

    Every row not dated on targetDate is treated as baseline. Baseline totals
    are averaged over the distinct baseline dates before comparison.

    Args:
        request: Target date and fact rows.
        settings: Injected settings (breakdown dimensions and workers).

    Returns:
        AnalysisResponse with the 18-metric map and the severity-ordered
        anomaly list, each anomaly carrying up to 4 dimensional breakdowns.

    Raises:
        HTTPException 422: If the engine rejects the rows.
    """
    logger.info(f"POST /analyze for {request.targetDate} with {len(request.rows)} rows")

    try:
        return run_analysis(
            request.rows,
            request.targetDate,
            dimensions=settings.breakdown_dimensions,
            max_workers=settings.breakdown_workers,
        )
    except ValueError as e:
        logger.warning(f"Analysis rejected for {request.targetDate}: {e}")
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/daily-kpis", response_model=DailyKpiReport)
def daily_kpis(request: AnalysisRequest) -> DailyKpiReport:
    """
    Build the per-date KPI table for the posted rows.

    Args:
        request: Target date and fact rows.

    Returns:
        DailyKpiReport with days newest first, the baseline averages of the
        daily metric values and the target-day significance signals.

    Raises:
        HTTPException 422: If the engine rejects the rows.
    """
    logger.info(f"POST /analyze/daily-kpis for {request.targetDate} with {len(request.rows)} rows")

    try:
        return build_daily_kpis(request.rows, request.targetDate)
    except ValueError as e:
        logger.warning(f"Daily KPI build rejected for {request.targetDate}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
