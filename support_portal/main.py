"""
FastAPI app entry point.
"""
import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager

from support_portal.config import LOG_LEVEL
from support_portal.api.route import router
from support_portal.catalog.catalog import catalog_cache
from support_portal.llm.errors import CatalogLoadError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warm the form catalog on startup."""
    try:
        catalog_cache.load()
    except CatalogLoadError:
        logger.error("Starting without a form catalog; catalog requests will fail until it loads")
    yield


app = FastAPI(
    title="Support Portal Assistant API",
    description="Form link finder and AI assistant for internal IT, HR and Facilities requests",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("support_portal.main:app", host="0.0.0.0", port=8000, reload=True)
