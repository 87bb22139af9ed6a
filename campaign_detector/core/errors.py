"""
错误处理模块 - 定义自定义异常类和错误处理逻辑
清晰的错误分类和有意义的错误消息
"""
from enum import Enum
from typing import Optional, Any, Dict
from fastapi import status


class ErrorCode(str, Enum):
    """错误代码枚举"""
    # 客户端错误
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_INPUT = "INVALID_INPUT"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"

    # 服务端错误
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # 外部服务错误
    OCR_ERROR = "OCR_ERROR"
    IMAGE_COMPARISON_ERROR = "IMAGE_COMPARISON_ERROR"
    RATE_LIMITED = "RATE_LIMITED"

    # 存储错误
    STORAGE_FAILED = "STORAGE_FAILED"


class BaseApplicationError(Exception):
    """应用基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "code": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


# 客户端错误 (4xx)
class InvalidRequestError(BaseApplicationError):
    """无效请求错误"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_REQUEST,
            details=details,
            status_code=status.HTTP_400_BAD_REQUEST
        )


class InvalidInputError(BaseApplicationError):
    """输入验证错误"""
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_INPUT,
            details=details,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


class ResourceNotFoundError(BaseApplicationError):
    """资源不存在错误"""
    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        message = f"{resource_type} not found"
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id
            message = f"{resource_type} with id '{resource_id}' not found"

        super().__init__(
            message=message,
            error_code=ErrorCode.RESOURCE_NOT_FOUND,
            details=details,
            status_code=status.HTTP_404_NOT_FOUND
        )


class PayloadTooLargeError(BaseApplicationError):
    """上传内容超过大小限制"""
    def __init__(self, limit_bytes: int):
        super().__init__(
            message=f"File exceeds the {limit_bytes // (1024 * 1024)}MB upload limit",
            error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            details={"limit_bytes": limit_bytes},
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )


# 服务端错误 (5xx)
class ServiceUnavailableError(BaseApplicationError):
    """服务不可用错误"""
    def __init__(self, service_name: str, reason: Optional[str] = None):
        message = f"{service_name} service is currently unavailable"
        details = {"service": service_name}
        if reason:
            message = f"{message}: {reason}"
            details["reason"] = reason

        super().__init__(
            message=message,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


# 外部服务错误
class OCRError(BaseApplicationError):
    """Textract 文本提取错误"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=f"OCR extraction failed: {message}",
            error_code=ErrorCode.OCR_ERROR,
            details=details,
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class ImageComparisonError(BaseApplicationError):
    """Gemini 图像对比错误"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=f"Failed to compare images with Gemini: {message}",
            error_code=ErrorCode.IMAGE_COMPARISON_ERROR,
            details=details,
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class RateLimitExceededError(BaseApplicationError):
    """外部API限流"""
    def __init__(self, service_name: str, hint: Optional[str] = None):
        details = {"service": service_name}
        if hint:
            details["hint"] = hint

        super().__init__(
            message=f"{service_name} API rate limit exceeded. Please wait a moment and try again.",
            error_code=ErrorCode.RATE_LIMITED,
            details=details,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS
        )


class StorageError(BaseApplicationError):
    """存储操作错误"""
    def __init__(self, message: str, operation: str):
        super().__init__(
            message=f"Storage operation '{operation}' failed: {message}",
            error_code=ErrorCode.STORAGE_FAILED,
            details={"operation": operation},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
