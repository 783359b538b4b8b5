import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from .auth_middleware import WorkerAuthMiddleware
from .config import CompositorConfig, RunningHubConfig, StorageConfig, supabase_credentials
from .pipeline import VlogPipelineService, vlog_router
from .pipeline import routes as vlog_routes
from .pipeline.compositor import MediaCompositor
from .pipeline.job_store import InMemoryJobStore, SupabaseJobStore
from .pipeline.storage import R2StorageService
from .runninghub import RunningHubClient

load_dotenv()

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


def build_job_store():
    """Supabase when configured, otherwise a process-local store."""
    creds = supabase_credentials()
    if creds:
        return SupabaseJobStore(*creds)
    logger.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set — using in-memory job store")
    return InMemoryJobStore()


def build_service(job_store) -> VlogPipelineService:
    return VlogPipelineService(
        client=RunningHubClient(RunningHubConfig.from_env()),
        storage=R2StorageService(StorageConfig.from_env()),
        job_store=job_store,
        compositor=MediaCompositor(CompositorConfig.from_env()),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Worker starting up...")
    job_store = build_job_store()
    vlog_routes.configure(build_service(job_store), job_store)
    yield
    logger.info("Worker shutting down...")


app = FastAPI(lifespan=lifespan)
app.add_middleware(WorkerAuthMiddleware)
app.include_router(vlog_router)


@app.get("/health")
def health_check():
    """Verify worker is running and env vars are configured."""
    return {
        "status": "ok",
        "runninghub_key_set": bool(os.environ.get("RUNNINGHUB_API_KEY")),
        "r2_configured": bool(os.environ.get("R2_ACCOUNT_ID")),
        "supabase_configured": supabase_credentials() is not None,
    }


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run("picmotion.main:app", host="0.0.0.0", port=port)
