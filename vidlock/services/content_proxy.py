"""
Content Proxy
Relays provider video/thumbnail/audio bytes to the caller as a live stream.
"""

import logging

from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from vidlock.core.errors import ContentProxyError, InvalidRequest
from vidlock.services.params import normalize_asset_type

logger = logging.getLogger(__name__)


DEFAULT_CONTENT_TYPE = "video/mp4"
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}
_RELAYED_HEADERS = ("content-length", "content-disposition", "accept-ranges")


class ContentProxy:
    def __init__(self, provider):
        self.provider = provider

    async def stream_content(self, job_id: str, asset_type: str = "video") -> StreamingResponse:
        """
        Open the provider stream and wrap it in a StreamingResponse.

        The upstream response is closed by a background task once the body has
        been relayed. Provider refusals raise ContentProxyError.
        """
        try:
            asset_type = normalize_asset_type(asset_type)
        except InvalidRequest as e:
            raise ContentProxyError(e.message, provider_status=400) from e
        upstream = await self.provider.open_content(job_id, asset_type)

        headers = dict(NO_CACHE_HEADERS)
        for name in _RELAYED_HEADERS:
            # aiter_bytes() decodes any content-encoding, so the upstream length would be wrong
            if name == "content-length" and "content-encoding" in upstream.headers:
                continue
            if name in upstream.headers:
                headers[name] = upstream.headers[name]
        media_type = upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        logger.info(f"[Content] Streaming {asset_type} for {job_id} ({media_type})")

        return StreamingResponse(
            upstream.aiter_bytes(),
            media_type=media_type,
            headers=headers,
            background=BackgroundTask(upstream.aclose),
        )

    async def is_ready(self, job_id: str, asset_type: str = "video") -> bool:
        return await self.provider.probe_content(job_id, normalize_asset_type(asset_type))
