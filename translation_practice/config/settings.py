import os
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    APP_NAME: str = "句子翻译练习服务"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./translation_practice.db"

    # 大模型配置（兼容OpenAI接口）
    LLM_API_KEY: str = ""
    LLM_MODEL: str = "qwen-plus"
    LLM_API_BASE: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    LLM_MAX_TOKENS: int = 2000
    LLM_TIMEOUT: int = 30

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    LOG_DIR: str = "logs"

    # 练习配置
    ADVANCE_THRESHOLD: int = 90           # 达到该分数视为句子通过
    PERFECT_SCORE: int = 100              # 满分自动进入下一句
    MAX_HINTS_PER_SENTENCE: int = 3
    MAX_CONSECUTIVE_FAILURES: int = 3     # 连续失败达到该次数允许跳过
    INCORRECT_ATTEMPT_PENALTY: int = 4    # 每次错误提交扣分
    RETRY_PENALTY: int = 5                # 每次重做扣分
    QUICK_REVIEW_MIN_RETRIES: int = 2     # 快速复习的重做次数下限

    # 复习配置
    REVIEW_CACHE_TTL_SECONDS: int = 300
    MAX_REVIEW_INTERVAL: int = 30

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

# 创建全局配置实例
settings = Settings()
