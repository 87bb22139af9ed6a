from functools import lru_cache

from fastapi import Depends

from campaign_detector.services import ServiceFactory
from campaign_detector.services.campaign_service import CampaignService
from campaign_detector.services.health_service import HealthService
from campaign_detector.services.image_comparison import ImageComparisonService
from campaign_detector.services.ocr_service import OCRService
from campaign_detector.services.text_alignment import TextAlignmentService


def get_ocr_service() -> OCRService:
    """获取 OCR 服务单例"""
    return ServiceFactory.get_ocr_service()


def get_image_comparison_service() -> ImageComparisonService:
    """获取图像对比服务单例"""
    return ServiceFactory.get_image_comparison_service()


def get_alignment_service() -> TextAlignmentService:
    """获取文本对齐服务单例"""
    return ServiceFactory.get_alignment_service()


def get_campaign_service(
    ocr: OCRService = Depends(get_ocr_service),
    image_comparison: ImageComparisonService = Depends(get_image_comparison_service),
) -> CampaignService:
    """组装活动工作流服务"""
    return ServiceFactory.get_campaign_service(ocr=ocr, image_comparison=image_comparison)


@lru_cache()
def get_health_service() -> HealthService:
    """获取健康检查服务单例"""
    return HealthService()
