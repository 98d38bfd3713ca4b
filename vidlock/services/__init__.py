# Services package - business logic and external integrations
from vidlock.services.characters import CharacterRegistry
from vidlock.services.content_proxy import ContentProxy
from vidlock.services.image_normalizer import ImageNormalizer
from vidlock.services.job_store import JobStore
from vidlock.services.orchestrator import RenderOrchestrator
from vidlock.services.provider_client import ProviderClient
from vidlock.services.reconciler import StatusReconciler
from vidlock.services.snapshots import SnapshotRegistry

__all__ = [
    "CharacterRegistry",
    "ContentProxy",
    "ImageNormalizer",
    "JobStore",
    "RenderOrchestrator",
    "ProviderClient",
    "StatusReconciler",
    "SnapshotRegistry",
]
