# services/api/app/core/config.py

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    统一管理项目的所有配置。
    使用 pydantic-settings，这个类会自动从环境变量或 .env 文件中读取配置。
    """

    # -------------------------------------------------------------------------
    # App 基础配置 (Basic App Settings)
    # -------------------------------------------------------------------------
    APP_NAME: str = "Storyboard Studio"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # API服务的监听主机和端口 (主要用于Uvicorn命令行)
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # -------------------------------------------------------------------------
    # 安全配置 (Security Settings)
    # -------------------------------------------------------------------------
    # 为空时不校验 X-API-Key
    SERVICE_API_KEY: str = ""
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # -------------------------------------------------------------------------
    # Gemini
    # -------------------------------------------------------------------------
    GOOGLE_API_KEY: Optional[str] = None
    # 旧前端使用的变量名
    API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-pro"
    GEMINI_TEMPERATURE: Optional[float] = None

    # -------------------------------------------------------------------------
    # 会话 (Sessions)
    # -------------------------------------------------------------------------
    # 空闲超时（秒）与最大会话数，超出后淘汰最久未访问的会话
    SESSION_TTL_SECONDS: float = 3600
    SESSION_MAX_COUNT: int = 1000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding='utf-8', extra='ignore')

    @property
    def gemini_api_key(self) -> Optional[str]:
        return self.GOOGLE_API_KEY or self.API_KEY

    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

# 创建一个全局唯一的settings实例
# from services.api.app.core.config import settings
settings = Settings()
