"""
Render Orchestrator
Validates a render request, prepares the reference image and submits the job
with a layered fallback policy:

1. Primary attempt with the chosen model and the resolved reference.
2. Access-denied failure -> retry once with the configured fallback model.
3. Moderation failure (from 1 or 2) with a reference attached -> retry once
   with no reference and the originally chosen model.
4. Otherwise the original provider error is raised.

Every successful path upserts the job record.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, Optional

from vidlock.core.errors import InvalidRequest, ProviderErrorKind, ProviderRequestFailed
from vidlock.schemas.render import RenderParams, RenderResponse
from vidlock.services import params as P
from vidlock.services.characters import CharacterRegistry, character_id_for
from vidlock.services.image_normalizer import ImageNormalizer, NormalizedImage
from vidlock.services.job_store import JobStore, utc_now_iso

logger = logging.getLogger(__name__)


ALLOWED_REFERENCE_TYPES = {"image/jpeg", "image/png", "image/webp"}
ALLOWED_REFERENCE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

MODEL_FALLBACK_NOTE = "Model {requested} was not available; used {fallback} instead."
MODERATION_NOTE = "Reference image removed after a moderation rejection."


@dataclass
class ReferenceUpload:
    """An ad-hoc reference image uploaded with the request."""
    data: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


def validate_reference_upload(upload: ReferenceUpload):
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    extension = PurePath(upload.filename or "").suffix.lower()
    if content_type in ALLOWED_REFERENCE_TYPES or extension in ALLOWED_REFERENCE_EXTENSIONS:
        return
    raise InvalidRequest("Unsupported reference file type. Use JPEG, PNG or WebP.")


@dataclass
class _Attempt:
    model: str
    reference: Optional[NormalizedImage]
    note: Optional[str] = None


class RenderOrchestrator:
    """Turns a render request into a provider job and a stored record."""

    def __init__(
        self,
        provider,
        jobs: JobStore,
        characters: CharacterRegistry,
        settings,
        normalizer: Optional[ImageNormalizer] = None,
    ):
        self.provider = provider
        self.jobs = jobs
        self.characters = characters
        self.settings = settings
        self.normalizer = normalizer or ImageNormalizer()

    def normalize_params(
        self,
        prompt: Optional[str],
        seconds=None,
        size=None,
        fit=None,
        model=None,
        use_lock=False,
        character: Optional[str] = None,
    ) -> RenderParams:
        s = self.settings
        character = (character or "").strip()
        return RenderParams(
            prompt=P.normalize_prompt(prompt),
            seconds=P.normalize_seconds(seconds, s.ALLOWED_SECONDS, s.default_seconds),
            size=P.normalize_size(size, s.DEFAULT_SIZE, s.MAX_DIMENSION),
            fit=P.normalize_fit(fit, s.DEFAULT_FIT),
            model=P.normalize_model(model, s.ALLOWED_MODELS, s.DEFAULT_MODEL),
            use_lock=P.parse_flag(use_lock),
            character=character_id_for(character) if character else None,
        )

    def _fallback_model_for(self, model: str) -> Optional[str]:
        fallback = (self.settings.FALLBACK_MODEL or "").strip()
        if fallback and fallback != model and fallback in self.settings.ALLOWED_MODELS:
            return fallback
        return None

    async def _resolve_reference(
        self, params: RenderParams, upload: Optional[ReferenceUpload]
    ) -> tuple:
        """Return (raw bytes or None, source) where source is "upload", "lock" or None."""
        if upload is not None and upload.data:
            validate_reference_upload(upload)
            return upload.data, "upload"
        if params.use_lock:
            data = await self.characters.load_lock(params.character)
            if data:
                return data, "lock"
            logger.info(f"[Render] Lock requested but none stored for '{params.character or 'global'}'")
        return None, None

    async def _upstream_prompt(self, params: RenderParams) -> str:
        if not params.character:
            return params.prompt
        record = await self.characters.get(params.character)
        bible = (record or {}).get("bible") or ""
        return f"{params.prompt}\n\n{bible.strip()}" if bible.strip() else params.prompt

    async def _submit(self, prompt: str, params: RenderParams, attempt: _Attempt) -> Dict[str, Any]:
        job = await self.provider.create_video(
            prompt=prompt,
            model=attempt.model,
            seconds=params.seconds,
            size=params.size,
            reference=attempt.reference,
        )
        if not isinstance(job, dict) or not job.get("id"):
            raise ProviderRequestFailed("Provider response did not include a job id")
        return job

    async def _record(
        self, job: Dict[str, Any], params: RenderParams, attempt: _Attempt, source: Optional[str]
    ) -> RenderResponse:
        now = utc_now_iso()
        attached = attempt.reference is not None
        status = str(job.get("status") or "queued")
        await self.jobs.upsert(job["id"], {
            "prompt": params.prompt,
            "seconds": params.seconds,
            "size": params.size,
            "fit": params.fit,
            "model": attempt.model,
            "requestedModel": params.model,
            "status": status,
            "progress": job.get("progress"),
            "character": params.character,
            "usedLock": attached and source == "lock",
            "usedReference": attached,
            "note": attempt.note,
            "createdAt": now,
            "updatedAt": now,
        })
        logger.info(f"[Render] Job {job['id']} submitted (model={attempt.model}, reference={attached})")
        return RenderResponse(
            id=job["id"],
            status=status,
            model=attempt.model,
            note=attempt.note,
            usedLock=attached and source == "lock",
            usedReference=attached,
        )

    async def submit_render(
        self,
        prompt: Optional[str],
        seconds=None,
        size=None,
        fit=None,
        model=None,
        reference: Optional[ReferenceUpload] = None,
        use_lock=False,
        character: Optional[str] = None,
    ) -> RenderResponse:
        params = self.normalize_params(prompt, seconds, size, fit, model, use_lock, character)

        raw, source = await self._resolve_reference(params, reference)
        normalized = None
        if raw is not None:
            normalized = await self.normalizer.normalize_async(raw, params.size, params.fit)

        upstream_prompt = await self._upstream_prompt(params)

        primary = _Attempt(model=params.model, reference=normalized)
        try:
            job = await self._submit(upstream_prompt, params, primary)
            return await self._record(job, params, primary, source)
        except ProviderRequestFailed as e:
            original = e
        logger.warning(f"[Render] Primary attempt failed ({original.kind.value}): {original.message}")

        failures = [original]

        fallback_model = self._fallback_model_for(params.model)
        if original.kind is ProviderErrorKind.ACCESS_DENIED and fallback_model:
            retry = _Attempt(
                model=fallback_model,
                reference=normalized,
                note=MODEL_FALLBACK_NOTE.format(requested=params.model, fallback=fallback_model),
            )
            logger.info(f"[Render] Retrying with fallback model {fallback_model}")
            try:
                job = await self._submit(upstream_prompt, params, retry)
                return await self._record(job, params, retry, source)
            except ProviderRequestFailed as e:
                logger.warning(f"[Render] Fallback model attempt failed ({e.kind.value}): {e.message}")
                failures.append(e)

        moderated = any(f.kind is ProviderErrorKind.MODERATION for f in failures)
        if moderated and normalized is not None and self.settings.MODERATION_FALLBACK:
            bare = _Attempt(model=params.model, reference=None, note=MODERATION_NOTE)
            logger.info("[Render] Retrying without reference image after moderation rejection")
            try:
                job = await self._submit(upstream_prompt, params, bare)
                return await self._record(job, params, bare, source)
            except ProviderRequestFailed as e:
                logger.warning(f"[Render] Reference-free attempt failed ({e.kind.value}): {e.message}")

        raise original
