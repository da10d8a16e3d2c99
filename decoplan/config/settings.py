"""应用配置模块

使用 Pydantic Settings 管理应用配置，支持从 .env 文件加载环境变量
"""

from pydantic_settings import BaseSettings
import os


class Settings(BaseSettings):
    """应用配置类"""

    # 应用配置
    APP_TITLE: str = "Produktionsplanung"
    APP_DESCRIPTION: str = "Zeitslot-Planung für die Textilveredelung"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # MySQL 配置 - 从环境变量加载
    MYSQL_USER: str = "root"
    MYSQL_PASSWORD: str = ""
    MYSQL_HOST: str = "127.0.0.1"
    MYSQL_PORT: str = "3306"
    MYSQL_DB: str = "decoplan"

    # 数据库配置 - 优先使用DATABASE_URL，否则从MySQL配置构建
    DATABASE_URL: str = ""
    ECHO_SQL: bool = False  # 是否打印SQL日志

    # 工作时间窗口（自午夜起的分钟数）与排程网格
    WORKDAY_START_MIN: int = 420   # 07:00
    WORKDAY_END_MIN: int = 1080    # 18:00
    GRID_MIN: int = 15

    # 需要尺码表才能提交的部门
    SIZE_SENSITIVE_DEPARTMENT: str = "TEAMSPORT"

    # 内部订单编号 INT-<year>-<n>
    DISPLAY_NUMBER_PREFIX: str = "INT"
    DISPLAY_NUMBER_START: int = 1000

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # 如果没有显式设置DATABASE_URL，从MySQL配置构建
        if not self.DATABASE_URL:
            if self.MYSQL_PASSWORD:
                self.DATABASE_URL = f"mysql+pymysql://{self.MYSQL_USER}:{self.MYSQL_PASSWORD}@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DB}"
            else:
                # 本地开发回退到 sqlite
                self.DATABASE_URL = "sqlite:///./dev.db"

    class Config:
        env_file = ".env"  # 从.env文件加载配置


# 创建全局配置实例
settings = Settings()
