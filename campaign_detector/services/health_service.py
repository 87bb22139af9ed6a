"""
健康检查服务 - 应用健康状态和就绪状态检查
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from campaign_detector.core.config import get_settings
from campaign_detector.core.logging import get_logger
from campaign_detector.db import check_connection

logger = get_logger(__name__)


class HealthService:
    """健康检查服务 - 监控系统状态"""

    def __init__(self):
        self.start_time = datetime.now()
        self.settings = get_settings()

    async def check_health(self) -> Dict[str, Any]:
        """基础健康检查 - 应用是否运行"""
        uptime = (datetime.now() - self.start_time).total_seconds()

        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": uptime,
            "version": self.settings.version,
            "environment": self.settings.environment.value,
        }

    async def check_readiness(self) -> Dict[str, Any]:
        """
        就绪检查 - 数据库必须可用；OCR 与 Gemini 只报告是否已配置
        """
        checks = {
            "api": True,
            "database": False,
            "ocr_configured": self.settings.ocr_enabled,
            "image_comparison_configured": self.settings.image_comparison_enabled,
        }
        errors = []

        try:
            checks["database"] = await check_connection()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Database check failed", error=str(e))
            errors.append(f"Database: {str(e)}")

        result = {
            "ready": checks["database"],
            "checks": checks,
            "timestamp": datetime.now().isoformat()
        }
        if errors:
            result["errors"] = errors
            result["reason"] = "; ".join(errors)

        return result
