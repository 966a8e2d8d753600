import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from partsledger.services.errors import InventoryError

logger = logging.getLogger(__name__)


async def _inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("inventory_error path=%s code=%s detail=%s", request.url.path, exc.code, exc.detail)
    else:
        logger.info("inventory_error path=%s code=%s status=%d", request.url.path, exc.code, exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.as_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, _inventory_error_handler)
