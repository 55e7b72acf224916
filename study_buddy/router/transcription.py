"""
Transcription - Turns recorded speech into text.

POST /api/transcribe with {"audio": "<base64 webm>"} and a bearer token:
1. The token is checked with the auth service (who is this user?)
2. The base64 audio is decoded in bounded slices into one buffer
3. The audio is sent to a Whisper-compatible transcription endpoint
4. {"text": "..."} comes back
"""

import base64
import binascii
import logging
from collections.abc import Callable

import httpx
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from study_buddy.config import BASE64_CHUNK_SIZE, TRANSCRIPTION_MODEL, Settings
from study_buddy.errors import (
    InvalidRequestError,
    StudyBuddyError,
    UnauthorizedError,
    UpstreamError,
    UpstreamTimeoutError,
)
from study_buddy.models import TranscriptionRequest
from study_buddy.router.action_router import error_response

logger = logging.getLogger(__name__)


def decode_base64_chunks(data: str, chunk_size: int = BASE64_CHUNK_SIZE) -> bytes:
    """
    Decode base64 text slice by slice into a single buffer.

    Each slice is decoded on its own, so no intermediate copy of the whole
    decoded payload is built per step.

    Args:
        data: Base64 text (no whitespace)
        chunk_size: Characters per slice; must be a multiple of 4

    Raises:
        InvalidRequestError: If the text is not valid base64
    """
    if chunk_size <= 0 or chunk_size % 4:
        raise ValueError("chunk_size must be a positive multiple of 4")

    buffer = bytearray()
    for position in range(0, len(data), chunk_size):
        try:
            buffer += base64.b64decode(data[position:position + chunk_size], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidRequestError("Audio data is not valid base64") from exc
    return bytes(buffer)


class Transcriber:
    """Verifies callers and forwards their audio for transcription."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        self.settings = settings
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(
                self.settings.upstream_timeout,
                connect=self.settings.connect_timeout,
            )
        )

    async def dispatch(self, authorization: str | None, body: object) -> Response:
        """Handle a transcription request. Never raises."""
        try:
            user_id = await self.verify_token(authorization)
            try:
                request = TranscriptionRequest.model_validate(body)
            except ValidationError as exc:
                raise InvalidRequestError("Expected a JSON body with an 'audio' field") from exc

            logger.info("Processing audio for user %s, length: %d", user_id, len(request.audio))
            text = await self.transcribe(request.audio)
            return JSONResponse({"text": text})
        except StudyBuddyError as e:
            return error_response(e)
        except Exception:
            logger.exception("Transcription error")
            return error_response(UpstreamError("Transcription failed"))

    async def verify_token(self, authorization: str | None) -> str:
        """
        Check a bearer token with the auth service and return the user id.

        Raises:
            UnauthorizedError: Missing, malformed or rejected token
        """
        if not authorization or not authorization.startswith("Bearer "):
            logger.warning("Missing or invalid Authorization header")
            raise UnauthorizedError()

        async with self._client_factory() as client:
            try:
                response = await client.get(
                    self.settings.auth_user_url,
                    headers={
                        "Authorization": authorization,
                        "apikey": self.settings.auth_api_key,
                    },
                )
            except httpx.TimeoutException as exc:
                raise UpstreamTimeoutError() from exc
            except httpx.HTTPError as exc:
                logger.error("Auth service unreachable: %s", exc)
                raise UpstreamError("Could not verify the authentication token") from exc

        try:
            user = response.json() if response.is_success else None
        except ValueError:
            user = None
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            logger.warning("User verification failed: %s", response.status_code)
            raise UnauthorizedError("Unauthorized - Invalid authentication token")
        return user_id

    async def transcribe(self, audio: str) -> str:
        """
        Transcribe base64 webm audio.

        Raises:
            InvalidRequestError: No audio, or audio that is not base64
            UpstreamTimeoutError: The transcription service did not answer in time
            UpstreamError: The transcription service failed
        """
        if not audio:
            raise InvalidRequestError("No audio data provided")

        binary_audio = decode_base64_chunks(audio)
        logger.info("Binary audio size: %d", len(binary_audio))

        async with self._client_factory() as client:
            try:
                response = await client.post(
                    self.settings.transcriptions_url,
                    headers={"Authorization": f"Bearer {self.settings.gateway_api_key}"},
                    files={"file": ("audio.webm", binary_audio, "audio/webm")},
                    data={"model": TRANSCRIPTION_MODEL},
                )
            except httpx.TimeoutException as exc:
                raise UpstreamTimeoutError() from exc
            except httpx.HTTPError as exc:
                logger.error("Transcription service unreachable: %s", exc)
                raise UpstreamError("Transcription failed") from exc

        if not response.is_success:
            logger.error("Whisper API error: %s %s", response.status_code, response.text)
            raise UpstreamError("Transcription failed")

        try:
            text = response.json().get("text") or ""
        except (ValueError, AttributeError) as exc:
            raise UpstreamError("Transcription failed") from exc

        logger.info("Transcription result: %.100s", text)
        return text
