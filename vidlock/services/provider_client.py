"""
Video Provider Client
Thin async layer over the provider's /videos endpoints.

Every call is bounded by an explicit timeout: short for JSON metadata calls,
long for content streaming. No call is retried here; the render fallback
policy is the only retry mechanism.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from vidlock.core.errors import ContentProxyError, ProviderRequestFailed
from vidlock.services.image_normalizer import NormalizedImage

logger = logging.getLogger(__name__)


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class ProviderClient:
    """Async client for the text/image-to-video API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        organization: str = "",
        project: str = "",
        meta_timeout: float = 30.0,
        content_timeout: float = 300.0,
        content_param: str = "type",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"}
        if organization:
            headers["OpenAI-Organization"] = organization
        if project:
            headers["OpenAI-Project"] = project

        self.content_param = content_param
        self.meta_timeout = httpx.Timeout(meta_timeout)
        # Connecting should still be quick; only reads may take long
        self.content_timeout = httpx.Timeout(content_timeout, connect=meta_timeout)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=self.meta_timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ProviderClient":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.PROVIDER_BASE_URL,
            organization=settings.OPENAI_ORG_ID,
            project=settings.OPENAI_PROJECT_ID,
            meta_timeout=settings.META_TIMEOUT_SECONDS,
            content_timeout=settings.CONTENT_TIMEOUT_SECONDS,
            content_param=settings.PROVIDER_CONTENT_PARAM,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def _send_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"[Provider] {method} {url} timed out")
            raise ProviderRequestFailed(f"Provider request timed out: {e!r}") from e
        except httpx.HTTPError as e:
            logger.warning(f"[Provider] {method} {url} failed: {e!r}")
            raise ProviderRequestFailed(f"Provider request failed: {e!r}") from e

        if not _is_success(response.status_code):
            logger.warning(f"[Provider] {method} {url} -> {response.status_code}")
            raise ProviderRequestFailed.from_response(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderRequestFailed(f"Provider returned invalid JSON: {response.text[:200]}") from e

    async def create_video(
        self,
        prompt: str,
        model: str,
        seconds: str,
        size: str,
        reference: Optional[NormalizedImage] = None,
    ) -> Dict[str, Any]:
        """POST /videos as multipart/form-data, optionally attaching input_reference."""
        # (None, value) parts are plain form fields; this keeps the body multipart
        # even when there is no file to attach.
        parts = {
            "prompt": (None, prompt),
            "model": (None, model),
            "seconds": (None, seconds),
            "size": (None, size),
        }
        if reference is not None:
            parts["input_reference"] = (reference.filename, reference.data, reference.mime_type)
        logger.info(
            f"[Provider] Creating video model={model} seconds={seconds} size={size} "
            f"reference={reference.filename if reference else None}"
        )
        return await self._send_json("POST", "/videos", files=parts)

    async def retrieve_video(self, video_id: str) -> Dict[str, Any]:
        return await self._send_json("GET", f"/videos/{video_id}")

    async def list_videos(self, limit: int = 20) -> Dict[str, Any]:
        return await self._send_json("GET", "/videos", params={"limit": limit})

    async def probe_content(self, video_id: str, asset_type: str = "video") -> bool:
        """HEAD the content endpoint: True when the asset is fetchable now."""
        try:
            response = await self._client.head(
                f"/videos/{video_id}/content",
                params={self.content_param: asset_type},
                timeout=self.meta_timeout,
            )
        except httpx.HTTPError as e:
            logger.info(f"[Provider] Content probe for {video_id} failed: {e!r}")
            return False
        return _is_success(response.status_code)

    async def open_content(self, video_id: str, asset_type: str = "video") -> httpx.Response:
        """
        Start a streaming GET on the content endpoint.

        The returned response body has not been read; the caller relays
        response.aiter_bytes() and must call response.aclose(). Non-2xx
        responses are closed here and raised as ContentProxyError carrying
        the provider's status and body text.
        """
        request = self._client.build_request(
            "GET",
            f"/videos/{video_id}/content",
            params={self.content_param: asset_type},
            timeout=self.content_timeout,
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ContentProxyError(f"Provider content request failed: {e!r}") from e

        if not _is_success(response.status_code):
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
            raise ContentProxyError(f"{response.status_code} {body}".strip(), provider_status=response.status_code)
        return response
