"""Risk assessment history and threshold endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from adaptive_auth.core.config import settings
from adaptive_auth.core.constants import Operation
from adaptive_auth.core.database import get_db
from adaptive_auth.dependencies.auth import get_current_admin, require_operation
from adaptive_auth.models.session import UserSession
from adaptive_auth.schemas.risk import (
    RiskAssessmentRead, RiskHistoryResponse, RiskThresholdSet, RiskThresholdsUpdate,
)
from adaptive_auth.services.risk_service import RiskService

router = APIRouter(prefix="/risk", tags=["risk"])


@router.get("/latest", response_model=RiskAssessmentRead)
async def latest_assessment(
    session: UserSession = Depends(require_operation(Operation.RISK_READ)),
    db: Session = Depends(get_db),
):
    return RiskService.get_latest_risk_assessment(db, session.user_id)


@router.get("/history", response_model=RiskHistoryResponse)
async def assessment_history(
    limit: int = Query(settings.RISK_HISTORY_DEFAULT_LIMIT, ge=1, le=500),
    session: UserSession = Depends(require_operation(Operation.RISK_READ)),
    db: Session = Depends(get_db),
):
    assessments = RiskService.get_risk_assessment_history(db, session.user_id, limit)
    return {"assessments": assessments, "count": len(assessments)}


@router.get("/thresholds", response_model=RiskThresholdSet)
async def get_thresholds(
    session: UserSession = Depends(require_operation(Operation.RISK_READ)),
    db: Session = Depends(get_db),
):
    return RiskService.get_thresholds(db)


@router.put("/thresholds", response_model=RiskThresholdSet)
async def update_thresholds(
    updates: RiskThresholdsUpdate,
    admin=Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return RiskService.update_risk_thresholds(db, updates, actor_id=admin["sub"])
