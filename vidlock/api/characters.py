"""
Characters API Routes
Character profiles, their lock images and prompt bibles, plus the single global lock.
"""

from typing import List
from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from vidlock.api.deps import get_characters
from vidlock.core.errors import InvalidRequest, NotFound
from vidlock.schemas.character import CharacterBibleUpdate, CharacterCreate, CharacterResponse
from vidlock.services.characters import CharacterRegistry, GLOBAL_LOCK_ID
from vidlock.services.orchestrator import ReferenceUpload, validate_reference_upload

router = APIRouter()


async def _read_image_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise InvalidRequest("Please upload an image")
    validate_reference_upload(ReferenceUpload(data=data, filename=file.filename, content_type=file.content_type))
    return data


@router.post("/characters", response_model=CharacterResponse, status_code=status.HTTP_201_CREATED)
async def create_character(
    request: CharacterCreate,
    characters: CharacterRegistry = Depends(get_characters),
):
    """Register a character (or update the bible of an existing one)."""
    return await characters.register(request.name, request.bible)


@router.get("/characters", response_model=List[CharacterResponse])
async def list_characters(characters: CharacterRegistry = Depends(get_characters)):
    return await characters.list()


@router.get("/characters/{character_id}", response_model=CharacterResponse)
async def get_character(
    character_id: str,
    characters: CharacterRegistry = Depends(get_characters),
):
    return await characters.require(character_id)


@router.delete("/characters/{character_id}")
async def delete_character(
    character_id: str,
    characters: CharacterRegistry = Depends(get_characters),
):
    """Delete a character together with its lock image."""
    await characters.delete(character_id)
    return {"deleted": character_id}


@router.put("/characters/{character_id}/bible", response_model=CharacterResponse)
async def update_bible(
    character_id: str,
    request: CharacterBibleUpdate,
    characters: CharacterRegistry = Depends(get_characters),
):
    return await characters.set_bible(character_id, request.bible)


@router.post("/characters/{name}/lock", response_model=CharacterResponse)
async def upload_character_lock(
    name: str,
    file: UploadFile = File(...),
    characters: CharacterRegistry = Depends(get_characters),
):
    """Store or replace a character's lock image. Registers the character if new."""
    data = await _read_image_upload(file)
    return await characters.save_lock(name, data)


@router.get("/characters/{character_id}/lock")
async def get_character_lock(
    character_id: str,
    characters: CharacterRegistry = Depends(get_characters),
):
    data = await characters.load_lock(character_id)
    if not data:
        raise NotFound("No lock image for this character")
    return Response(content=data, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.delete("/characters/{character_id}/lock", response_model=CharacterResponse)
async def delete_character_lock(
    character_id: str,
    characters: CharacterRegistry = Depends(get_characters),
):
    await characters.delete_lock(character_id)
    return await characters.require(character_id)


@router.post("/lock")
async def upload_global_lock(
    file: UploadFile = File(...),
    characters: CharacterRegistry = Depends(get_characters),
):
    """Store the global lock used when useLock is set without a character."""
    data = await _read_image_upload(file)
    await characters.save_global_lock(data)
    return {"id": GLOBAL_LOCK_ID, "hasLock": True}


@router.get("/lock")
async def get_global_lock(characters: CharacterRegistry = Depends(get_characters)):
    data = await characters.load_lock(None)
    if not data:
        raise NotFound("No global lock image")
    return Response(content=data, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.delete("/lock")
async def delete_global_lock(characters: CharacterRegistry = Depends(get_characters)):
    removed = await characters.delete_global_lock()
    return {"id": GLOBAL_LOCK_ID, "hasLock": False, "removed": removed}
