"""
服务模块 - 提供统一的服务访问接口
"""

from campaign_detector.services.base_service import BaseService, singleton

from campaign_detector.services.service_factory import ServiceFactory

__all__ = [
    'BaseService',
    'singleton',
    'ServiceFactory',
]
