from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from campaign_detector.api.deps import get_health_service
from campaign_detector.core.logging import get_logger
from campaign_detector.services.health_service import HealthService

router = APIRouter()
logger = get_logger(__name__)


@router.get("")
async def health_check(
    health_service: HealthService = Depends(get_health_service)
) -> Dict[str, Any]:
    """
    健康检查

    返回应用的基本健康状态
    """
    return await health_service.check_health()


@router.get("/ready")
async def readiness_check(
    health_service: HealthService = Depends(get_health_service)
) -> Dict[str, Any]:
    """
    就绪检查

    数据库不可用时返回503
    """
    readiness_status = await health_service.check_readiness()
    if not readiness_status.get("ready", False):
        logger.warning("Readiness check failed", reason=readiness_status.get("reason"))
        raise HTTPException(
            status_code=503,
            detail=f"Service not ready: {readiness_status.get('reason', 'Unknown')}"
        )
    return readiness_status


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """
    存活检查

    简单的存活探针，用于Kubernetes等容器编排工具
    """
    return {"status": "alive"}
