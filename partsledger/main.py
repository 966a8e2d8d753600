from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from partsledger.api.inventory import router as inventory_router
from partsledger.api.inventory_issues import router as inventory_issues_router
from partsledger.api.inventory_receipts import router as inventory_receipts_router
from partsledger.errors import register_error_handlers
from partsledger.logging import configure_logging
from partsledger.telemetry import setup_otel

app = FastAPI(title="partsledger API")

configure_logging()
setup_otel(app)
register_error_handlers(app)

app.include_router(inventory_router)
app.include_router(inventory_issues_router)
app.include_router(inventory_receipts_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
