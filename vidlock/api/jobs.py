"""
Jobs API Routes
Status polling, content relay and local history.
"""

from typing import List
from fastapi import APIRouter, Depends, Query

from vidlock.api.deps import get_content_proxy, get_job_store, get_provider, get_reconciler
from vidlock.schemas.job import JobRecord, JobStatusView
from vidlock.services.content_proxy import ContentProxy
from vidlock.services.job_store import JobStore
from vidlock.services.reconciler import StatusReconciler

router = APIRouter()


@router.get("/status/{job_id}", response_model=JobStatusView)
async def poll_status(
    job_id: str,
    reconciler: StatusReconciler = Depends(get_reconciler),
):
    """Poll the provider, reconcile and persist the job's status."""
    return await reconciler.poll_status(job_id)


@router.get("/ping-content/{job_id}")
async def ping_content(
    job_id: str,
    type: str = Query("video"),
    proxy: ContentProxy = Depends(get_content_proxy),
):
    """Cheap readiness probe: is the asset fetchable yet?"""
    return {"id": job_id, "type": type, "ready": await proxy.is_ready(job_id, type)}


@router.get("/content/{job_id}")
async def stream_content(
    job_id: str,
    type: str = Query("video"),
    proxy: ContentProxy = Depends(get_content_proxy),
):
    """Stream video/thumbnail/audio bytes from the provider."""
    return await proxy.stream_content(job_id, type)


@router.get("/list")
async def list_provider_jobs(
    limit: int = Query(20, ge=1, le=100),
    provider=Depends(get_provider),
):
    """Passthrough list of recent provider jobs."""
    return await provider.list_videos(limit)


@router.get("/history", response_model=List[JobRecord], response_model_exclude_none=True)
async def history(
    limit: int = Query(50, ge=1),
    jobs: JobStore = Depends(get_job_store),
):
    """Local job history, newest first."""
    return await jobs.list(limit)


@router.get("/job/{job_id}", response_model=JobRecord, response_model_exclude_none=True)
async def get_job(
    job_id: str,
    jobs: JobStore = Depends(get_job_store),
):
    return await jobs.require(job_id)
