import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import database
import settings
from errors import register_error_handlers
from posts import router as posts_router
from users import router as users_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        database.ensure_indexes(database.db)
        logger.info(f"Connected to database {settings.DATABASE_NAME}")
    yield
    if database.client is not None:
        database.client.close()


app = FastAPI(title="Blog API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(users_router, prefix="/api")
app.include_router(posts_router, prefix="/api")

os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
app.mount(settings.UPLOADS_URL_PREFIX, StaticFiles(directory=settings.UPLOADS_DIR), name="uploads")


@app.get("/")
def read_root():
    return {"message": "Blog API is running"}


@app.get("/api/health")
def health():
    """Report whether the backend and database are reachable"""
    response = {
        "backend": "running",
        "database": "not configured",
        "database_name": None,
        "collections": [],
    }

    if database.db is not None:
        response["database_name"] = settings.DATABASE_NAME
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "connected"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            response["database"] = f"error: {str(e)[:50]}"

    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
