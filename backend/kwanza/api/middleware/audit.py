"""
Middleware de auditoria dos pedidos HTTP.
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
import logging
import time


logger = logging.getLogger(__name__)


class AuditLogMiddleware(BaseHTTPMiddleware):
    """
    Regista todos os pedidos: método, caminho, estado e duração.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} "
            f"- {response.status_code} - {process_time:.3f}s "
            f"- IP: {request.client.host if request.client else 'unknown'}"
        )
        response.headers["X-Process-Time"] = f"{process_time:.3f}"

        return response
