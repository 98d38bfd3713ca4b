"""
API Dependencies
Services are built once in the application lifespan and read off app.state.
"""

from fastapi import Request

from vidlock.services import (
    CharacterRegistry,
    ContentProxy,
    JobStore,
    RenderOrchestrator,
    SnapshotRegistry,
    StatusReconciler,
)


def get_orchestrator(request: Request) -> RenderOrchestrator:
    return request.app.state.orchestrator


def get_reconciler(request: Request) -> StatusReconciler:
    return request.app.state.reconciler


def get_content_proxy(request: Request) -> ContentProxy:
    return request.app.state.content_proxy


def get_job_store(request: Request) -> JobStore:
    return request.app.state.jobs


def get_characters(request: Request) -> CharacterRegistry:
    return request.app.state.characters


def get_snapshots(request: Request) -> SnapshotRegistry:
    return request.app.state.snapshots


def get_provider(request: Request):
    return request.app.state.provider
