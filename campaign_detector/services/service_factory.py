"""
服务工厂 - 统一的服务创建和管理
"""
from typing import TYPE_CHECKING

# 避免循环导入，使用TYPE_CHECKING
if TYPE_CHECKING:
    from campaign_detector.services.campaign_service import CampaignService
    from campaign_detector.services.image_comparison import ImageComparisonService
    from campaign_detector.services.ocr_service import OCRService
    from campaign_detector.services.text_alignment import TextAlignmentService


class ServiceFactory:
    """
    服务工厂 - 提供统一的服务访问接口

    外部服务适配器与对齐服务为单例；CampaignService 每次组装
    """

    @staticmethod
    def get_ocr_service() -> 'OCRService':
        """获取 Textract OCR 服务"""
        from campaign_detector.services.ocr_service import OCRService
        return OCRService()

    @staticmethod
    def get_image_comparison_service() -> 'ImageComparisonService':
        """获取 Gemini 图像对比服务"""
        from campaign_detector.services.image_comparison import ImageComparisonService
        return ImageComparisonService()

    @staticmethod
    def get_alignment_service() -> 'TextAlignmentService':
        """获取文本对齐服务"""
        from campaign_detector.services.text_alignment import TextAlignmentService
        return TextAlignmentService()

    @staticmethod
    def get_campaign_service(ocr=None, image_comparison=None) -> 'CampaignService':
        """组装活动工作流服务"""
        from campaign_detector.services.campaign_service import CampaignService
        return CampaignService(
            ocr=ocr,
            image_comparison=image_comparison,
            alignment=ServiceFactory.get_alignment_service(),
        )
