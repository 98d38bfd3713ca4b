"""
Status Reconciler
Polls the provider for a job, applies the 100%-progress readiness check and
patches the stored record. Safe to call repeatedly and concurrently for the
same job: each call is one retrieve, at most one probe, and one merged upsert.
"""

import logging
from typing import Any, Dict, Optional

from vidlock.schemas.job import JobStatusView
from vidlock.services.job_store import JobStore, utc_now_iso

logger = logging.getLogger(__name__)


IN_PROGRESS = "in_progress"
SYNTHETIC_READY = "ready"


def progress_is_complete(progress: Any) -> bool:
    """True when the provider reports progress == 100 as a number."""
    if isinstance(progress, bool):
        return False
    return isinstance(progress, (int, float)) and progress == 100


def extract_asset_url(payload: Dict[str, Any]) -> Optional[str]:
    assets = payload.get("assets")
    if isinstance(assets, dict):
        videos = assets.get("video")
        if isinstance(videos, list) and videos and isinstance(videos[0], dict) and videos[0].get("url"):
            return videos[0]["url"]
    return payload.get("asset_url") or None


class StatusReconciler:
    def __init__(self, provider, jobs: JobStore, settings):
        self.provider = provider
        self.jobs = jobs
        self.done_statuses = {s.lower() for s in settings.DONE_STATUSES}
        self.success_statuses = {s.lower() for s in settings.SUCCESS_STATUSES}

    async def poll_status(self, job_id: str) -> JobStatusView:
        """
        Retrieve, reconcile and persist the current status of a job.

        Provider failures propagate as ProviderRequestFailed before anything
        is written.
        """
        payload = await self.provider.retrieve_video(job_id)
        # Stored as the provider sent it; compared case-insensitively
        status = str(payload.get("status") or "unknown")
        progress = payload.get("progress")

        synthetic = False
        if status.lower() == IN_PROGRESS and progress_is_complete(progress):
            # Some provider versions report 100% before the asset can be fetched
            if await self.provider.probe_content(job_id, "video"):
                logger.info(f"[Status] {job_id} at 100% and content is fetchable; marking ready")
                status = SYNTHETIC_READY
                synthetic = True

        now = utc_now_iso()
        patch: Dict[str, Any] = {"status": status, "progress": progress, "updatedAt": now}
        done = status.lower() in self.done_statuses
        succeeded = status.lower() in self.success_statuses
        if done:
            patch["completedAt"] = now
        asset_url = extract_asset_url(payload) if succeeded else None
        if asset_url:
            patch["assetUrl"] = asset_url

        await self.jobs.upsert(payload.get("id") or job_id, patch)

        view = {**payload}
        view.update({
            "id": payload.get("id") or job_id,
            "status": status,
            "progress": progress,
            "done": done,
            "succeeded": succeeded,
            "synthetic_ready": synthetic,
            "asset_url": asset_url,
            "updatedAt": now,
            "completedAt": patch.get("completedAt"),
        })
        return JobStatusView(**view)
