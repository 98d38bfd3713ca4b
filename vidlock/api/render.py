"""
Render API Routes
Accepts a prompt (plus optional reference image / character lock) and submits a generation job.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile

from vidlock.api.deps import get_orchestrator
from vidlock.schemas.render import RenderResponse
from vidlock.services.orchestrator import ReferenceUpload, RenderOrchestrator

router = APIRouter()


@router.post("/render", response_model=RenderResponse, response_model_exclude_none=True)
async def submit_render(
    prompt: str = Form(""),
    seconds: Optional[str] = Form(None),
    size: Optional[str] = Form(None),
    fit: Optional[str] = Form(None),
    model: Optional[str] = Form(None),
    useLock: Optional[str] = Form(None),
    character: Optional[str] = Form(None),
    ref: Optional[UploadFile] = File(None),
    orchestrator: RenderOrchestrator = Depends(get_orchestrator),
):
    """
    Submit a generation job.
    
    Reference priority: an uploaded `ref` file wins; otherwise, with
    `useLock` set, the stored lock image of `character` (or the global lock).
    The reference is resized to `size` using `fit` (cover/contain) first.
    """
    upload = None
    if ref is not None:
        data = await ref.read()
        if data:
            upload = ReferenceUpload(data=data, filename=ref.filename, content_type=ref.content_type)
    
    return await orchestrator.submit_render(
        prompt=prompt,
        seconds=seconds,
        size=size,
        fit=fit,
        model=model,
        reference=upload,
        use_lock=useLock,
        character=character,
    )
