import logging

from fastapi import FastAPI

from .database import init_db
from .routes import register_all

logger = logging.getLogger(__name__)

app = FastAPI(title="flowengine")
register_all(app)


@app.on_event("startup")
def _startup():
    init_db()
    logger.info("flowengine API started")


@app.get('/health')
def health():
    return {"status": "ok"}
