"""FastAPI主应用入口

生产时间槽排程服务，包含工位管理、订单流程、时间槽排程与执行等功能模块
- 使用依赖注入管理数据库会话
- 领域异常统一转换为 {"type", "message", "details"} 格式的错误响应
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.v1 import orders_router, timeslots_router, work_centers_router
from .config.settings import settings
from .core.exceptions import SchedulingError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# 创建FastAPI应用实例
app = FastAPI(title=settings.APP_TITLE, description=settings.APP_DESCRIPTION, version=settings.APP_VERSION)

# 挂载API路由
app.include_router(orders_router, prefix="/api/v1")
app.include_router(timeslots_router, prefix="/api/v1")
app.include_router(work_centers_router, prefix="/api/v1")


@app.exception_handler(SchedulingError)
def scheduling_error_handler(request: Request, exc: SchedulingError):
    """把领域异常转换为对应的HTTP状态码"""
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health():
    return {"status": "ok", "version": settings.APP_VERSION}
