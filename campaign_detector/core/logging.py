"""
结构化日志配置模块 - 使用structlog实现JSON格式日志
日志即文档，提供有意义的上下文
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor


def configure_logging(
    level: str = "INFO",
    json_logs: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    配置结构化日志系统

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: 是否输出JSON格式日志
        log_file: 日志文件路径（可选）
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        # 生产环境：JSON格式
        processors.append(structlog.processors.JSONRenderer())
    else:
        # 开发环境：彩色控制台输出
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)


def get_logger(
    name: str,
    **initial_context: Any
) -> FilteringBoundLogger:
    """
    获取结构化日志记录器

    Args:
        name: 日志记录器名称（通常使用模块名）
        **initial_context: 初始上下文数据
    """
    logger = structlog.get_logger(name)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger


class LogEvent:
    """标准化的日志事件类型"""

    # 应用生命周期
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # API请求
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"

    # 外部服务
    OCR_STARTED = "ocr_started"
    OCR_COMPLETED = "ocr_completed"
    OCR_FAILED = "ocr_failed"

    SEARCH_COMPLETED = "similarity_search_completed"
    SEARCH_FAILED = "similarity_search_failed"

    IMAGE_COMPARISON_STARTED = "image_comparison_started"
    IMAGE_COMPARISON_COMPLETED = "image_comparison_completed"
    IMAGE_COMPARISON_FAILED = "image_comparison_failed"

    # 业务逻辑
    UPLOAD_RECEIVED = "upload_received"
    CAMPAIGN_CONFIRMED = "campaign_confirmed"
    CAMPAIGN_INSERTED = "campaign_inserted"
    ALIGNMENT_COMPUTED = "alignment_computed"
    ALIGNMENT_TRUNCATED = "alignment_truncated"

    # 性能指标
    SLOW_OPERATION = "slow_operation"


def create_request_logger(request_id: str) -> FilteringBoundLogger:
    """创建绑定了请求ID的日志记录器"""
    return get_logger("request", request_id=request_id)
