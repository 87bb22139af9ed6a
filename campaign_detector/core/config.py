"""
配置管理 - 使用Pydantic Settings实现环境变量管理
所有外部服务（Textract、Gemini、数据库）的参数都通过环境变量提供
"""
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """运行环境枚举"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """应用配置类 - 所有配置项通过环境变量管理"""

    # API配置
    api_v1_prefix: str = Field(default="/api/v1", description="API路由前缀")
    project_name: str = Field(default="Campaign Detector", description="项目名称")
    version: str = Field(default="1.0.0", description="版本号")
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="运行环境")

    # 数据库配置
    database_url: str = Field(
        default="sqlite+aiosqlite:///./campaigns.db",
        description="SQL 数据库连接字符串 (PostgreSQL 使用 pg_trgm 搜索函数)"
    )

    # AWS Textract (OCR)
    aws_region: Optional[str] = Field(default=None, description="AWS region for Textract")
    aws_access_key_id: Optional[str] = Field(default=None, description="AWS access key id")
    aws_secret_access_key: Optional[str] = Field(default=None, description="AWS secret access key")

    # Google Gemini (图像对比)
    google_gemini_api_key: Optional[str] = Field(default=None, description="Gemini API key")
    gemini_use_experimental: bool = Field(default=False, description="使用 gemini-2.0-flash-exp 模型")
    image_comparison_top_n: int = Field(default=2, description="对前N个匹配结果执行图像对比")

    # 搜索配置
    search_top_k: int = Field(default=5, description="相似活动返回数量")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="上传文件大小上限(字节)")

    # 文本对齐配置
    max_alignment_chars: int = Field(default=20000, description="参与对齐的最大字符数")
    diff_timeout_seconds: float = Field(default=1.0, description="diff-match-patch 超时时间(秒)")
    min_match_chars: int = Field(default=1, description="高亮匹配片段的最少非空白字符数")
    default_alignment_mode: str = Field(default="exact", description="默认对齐模式: exact 或 words")

    # 性能配置
    request_timeout: int = Field(default=30, description="请求超时时间(秒)")

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    json_logs: bool = Field(default=True, description="是否输出JSON格式日志")

    # CORS 配置
    # 以逗号分隔的允许来源列表，例如："http://localhost:3000,https://your.app"
    cors_allow_origins: str = Field(default="http://localhost:3000", description="允许的跨域来源，逗号分隔")
    cors_allow_credentials: bool = Field(default=False, description="是否允许携带凭据")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # 忽略未定义的环境变量
    )

    @property
    def is_development(self) -> bool:
        """是否为开发环境"""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_postgres(self) -> bool:
        """数据库是否为 PostgreSQL（决定相似度搜索走数据库函数还是本地计算）"""
        return self.database_url.startswith("postgresql")

    @property
    def ocr_enabled(self) -> bool:
        return bool(self.aws_region)

    @property
    def image_comparison_enabled(self) -> bool:
        return bool(self.google_gemini_api_key)

    def get_aws_client_params(self) -> dict:
        """获取 boto3 客户端参数"""
        params = {"region_name": self.aws_region}
        if self.aws_access_key_id and self.aws_secret_access_key:
            params["aws_access_key_id"] = self.aws_access_key_id
            params["aws_secret_access_key"] = self.aws_secret_access_key
        return params

    def get_cors_origins(self) -> list[str]:
        """返回允许的 CORS 来源列表"""
        raw = (self.cors_allow_origins or "").strip()
        if not raw:
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    获取配置单例
    使用lru_cache确保全局只有一个Settings实例
    """
    return Settings()
