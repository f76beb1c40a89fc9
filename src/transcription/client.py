# src/transcription/client.py
"""Speech-recognition service client.

Uploads an extracted audio track and returns the SRT transcript the service
produces. The primary endpoint is tried first, then the backup; each endpoint
gets its own tenacity retry budget. Services that sleep when idle are woken
with a GET to their root before the upload.
"""

import asyncio
import logging

import aiohttp
from aiohttp.client_exceptions import ClientError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.editor.editor_config import DEFAULT_TRANSCRIBE_ENDPOINT, TranscriptionSettings
from src.transcoding.result_types import DownloadArtifact

logger = logging.getLogger(__name__)

WARMUP_TIMEOUT_SEC = 10
TRANSCRIPT_FIELD = "srt_content"


class TranscriptionError(Exception):
    """Raised when no endpoint produced a transcript."""

    pass


def service_root(endpoint_url: str) -> str:
    """Return the service prefix an endpoint URL is mounted under."""
    if endpoint_url.endswith(DEFAULT_TRANSCRIBE_ENDPOINT):
        return endpoint_url[: -len(DEFAULT_TRANSCRIBE_ENDPOINT)]
    return endpoint_url.rsplit("/", 1)[0]


class TranscriptionClient:
    def __init__(
        self,
        settings: TranscriptionSettings | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.settings = settings or TranscriptionSettings()
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "TranscriptionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _build_form(
        self, audio: DownloadArtifact, enable_vocal_separation: bool
    ) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field(
            self.settings.upload_field_name,
            audio.data,
            filename=audio.filename,
            content_type=audio.mime_type,
        )
        form.add_field("enable_vocal_separation", str(enable_vocal_separation).lower())
        return form

    async def _warm_up(self, session: aiohttp.ClientSession, endpoint_url: str) -> None:
        root = service_root(endpoint_url)
        try:
            timeout = aiohttp.ClientTimeout(total=WARMUP_TIMEOUT_SEC)
            async with session.get(root, timeout=timeout) as response:
                logger.debug(f"Warm-up GET {root} -> {response.status}")
        except (ClientError, TimeoutError) as e:
            logger.warning(f"Warm-up request to {root} failed: {e}")

    async def _post_audio(
        self,
        session: aiohttp.ClientSession,
        endpoint_url: str,
        audio: DownloadArtifact,
        enable_vocal_separation: bool,
    ) -> str:
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_sec)
        async with session.post(
            endpoint_url,
            data=self._build_form(audio, enable_vocal_separation),
            timeout=timeout,
        ) as response:
            response.raise_for_status()
            try:
                data = await response.json(content_type=None)
            except ValueError as e:
                raise TranscriptionError(
                    f"Response from {endpoint_url} is not valid JSON: {e}"
                ) from e

        if not isinstance(data, dict) or not isinstance(data.get(TRANSCRIPT_FIELD), str):
            raise TranscriptionError(f"Response from {endpoint_url} has no transcript")
        return data[TRANSCRIPT_FIELD]

    async def _transcribe_with_retry(
        self,
        session: aiohttp.ClientSession,
        endpoint_url: str,
        audio: DownloadArtifact,
        enable_vocal_separation: bool,
    ) -> str:
        settings = self.settings
        async for attempt in AsyncRetrying(
            wait=wait_exponential(
                min=settings.retry_min_wait_sec, max=settings.retry_max_wait_sec
            ),
            stop=stop_after_attempt(settings.retry_attempts),
            retry=retry_if_exception_type((ClientError, asyncio.TimeoutError)),
            reraise=True,
        ):
            with attempt:
                return await self._post_audio(
                    session, endpoint_url, audio, enable_vocal_separation
                )
        raise TranscriptionError(f"No attempt was made against {endpoint_url}")

    async def transcribe(
        self, audio: DownloadArtifact, enable_vocal_separation: bool | None = None
    ) -> str:
        """Transcribe an audio artifact into SRT text.

        Args:
        ----
            audio: Extracted audio track
            enable_vocal_separation: Ask the service to isolate vocals first.
                Defaults to the configured value.

        Returns:
        -------
            The SRT transcript

        Raises:
        ------
            TranscriptionError: If every endpoint failed

        """
        endpoints = self.settings.resolved_endpoints()
        if not endpoints:
            raise TranscriptionError(
                "No transcription endpoint configured; set "
                f"{self.settings.primary_url_env_var} or transcription_settings.primary_url"
            )
        if enable_vocal_separation is None:
            enable_vocal_separation = self.settings.enable_vocal_separation

        session = await self._get_session()
        failures = []
        for endpoint_url in endpoints:
            if self.settings.warmup_request:
                await self._warm_up(session, endpoint_url)
            logger.info(
                f"Uploading {audio.filename} ({audio.size_bytes} bytes) to {endpoint_url}"
            )
            try:
                transcript = await self._transcribe_with_retry(
                    session, endpoint_url, audio, enable_vocal_separation
                )
            except (ClientError, TimeoutError, TranscriptionError, RetryError) as e:
                logger.warning(f"Transcription endpoint {endpoint_url} failed: {e}")
                failures.append(f"{endpoint_url}: {e}")
                continue
            logger.info(f"Transcription complete via {endpoint_url}")
            return transcript

        logger.error(f"All transcription endpoints failed: {'; '.join(failures)}")
        raise TranscriptionError(
            f"Transcription failed on {len(endpoints)} endpoint(s): {'; '.join(failures)}"
        )
