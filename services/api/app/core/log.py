# services/api/app/core/log.py

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

access_logger = logging.getLogger("storyboard.access")


def setup_logging(level: str = "INFO") -> None:
    """在应用启动时调用一次；重复调用只更新级别。"""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(level.upper())


def client_ip(request: Request) -> str:
    # 反向代理后优先取 X-Forwarded-For
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "-"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        ip = client_ip(request)
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            access_logger.exception("%s - ERROR %s %s", ip, request.method, request.url.path)
            raise
        dur = int((time.time() - start) * 1000)
        access_logger.info("%s - %s %s %s %dms", ip, request.method, request.url.path, response.status_code, dur)
        return response
