# Pydantic schemas package
from vidlock.schemas.job import JobRecord, JobStatusView
from vidlock.schemas.render import RenderParams, RenderResponse
from vidlock.schemas.character import CharacterCreate, CharacterBibleUpdate, CharacterResponse
from vidlock.schemas.snapshot import SnapshotCreate, SnapshotResponse

__all__ = [
    "JobRecord", "JobStatusView",
    "RenderParams", "RenderResponse",
    "CharacterCreate", "CharacterBibleUpdate", "CharacterResponse",
    "SnapshotCreate", "SnapshotResponse",
]
