"""
Action Router - Proxies study requests to the chat-completion gateway.

Every request names an action. The router:
1. Picks the one instruction template for that action
2. Sends [instruction, ...messages] to the gateway
3. Chat: relays the gateway's event stream byte for byte
   Everything else: waits for the full JSON answer and returns it unchanged

Key Concept:
The router is stateless. Each request opens its own upstream connection, so
unrelated conversations can be served concurrently with nothing shared.

Failures never escape: dispatch() turns every error into a JSON payload
{"error": ..., "kind": ...} with a matching status code.
"""

import logging
from collections.abc import AsyncIterator, Callable

import httpx
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.background import BackgroundTask

from study_buddy.config import (
    CHAT_INSTRUCTION,
    EVALUATE_WRITING_INSTRUCTION,
    FLASHCARDS_INSTRUCTION,
    INFOGRAPHIC_INSTRUCTION,
    MINDMAP_INSTRUCTION,
    NOTES_INSTRUCTION,
    PODCAST_INSTRUCTION,
    QUIZ_INSTRUCTION,
    SUMMARIZE_INSTRUCTION,
    WRITING_PROMPT_INSTRUCTION,
    Settings,
    get_language_prompt,
)
from study_buddy.errors import (
    QuotaExceededError,
    RateLimitedError,
    StudyBuddyError,
    UpstreamError,
    UpstreamTimeoutError,
)
from study_buddy.models import Action, ActionRequest

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]

INSTRUCTIONS: dict[Action, str] = {
    Action.CHAT: CHAT_INSTRUCTION,
    Action.GENERATE_QUIZ: QUIZ_INSTRUCTION,
    Action.GENERATE_FLASHCARDS: FLASHCARDS_INSTRUCTION,
    Action.GENERATE_MINDMAP: MINDMAP_INSTRUCTION,
    Action.GENERATE_NOTES: NOTES_INSTRUCTION,
    Action.GENERATE_INFOGRAPHIC: INFOGRAPHIC_INSTRUCTION,
    Action.GENERATE_PODCAST: PODCAST_INSTRUCTION,
    Action.SUMMARIZE: SUMMARIZE_INSTRUCTION,
    Action.GENERATE_WRITING_PROMPT: WRITING_PROMPT_INSTRUCTION,
    Action.EVALUATE_WRITING: EVALUATE_WRITING_INSTRUCTION,
}


def build_instruction(action: Action, language: str | None = None) -> str:
    """
    The system instruction for an action, with language guidance appended.

    Example:
        build_instruction(Action.GENERATE_QUIZ, "zu")
        # QUIZ_INSTRUCTION + "\\n\\nIMPORTANT: Please respond in isiZulu ..."
    """
    instruction = INSTRUCTIONS[action]
    language_prompt = get_language_prompt(language)
    if language_prompt:
        instruction = f"{instruction}\n\n{language_prompt}"
    return instruction


def build_upstream_payload(request: ActionRequest, model: str) -> dict:
    """Body of the chat-completions call: one system message, then the caller's."""
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": build_instruction(request.action, request.language)},
            *(message.model_dump() for message in request.messages),
        ],
        "stream": request.action.is_streamed,
    }


def error_response(error: StudyBuddyError) -> JSONResponse:
    return JSONResponse(error.to_payload(), status_code=error.status_code)


class ActionRouter:
    """
    Routes ActionRequests to the gateway.

    Example:
        router = ActionRouter(Settings.from_env())
        response = await router.dispatch(ActionRequest(...))
    """

    def __init__(self, settings: Settings, client_factory: ClientFactory | None = None):
        """
        Initialize the router.

        Args:
            settings: Validated settings (gateway URL, key, model, timeouts)
            client_factory: Builds the per-request upstream client; defaults
                to a plain httpx.AsyncClient with the configured timeouts
        """
        self.settings = settings
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(
                self.settings.upstream_timeout,
                connect=self.settings.connect_timeout,
            )
        )

    async def dispatch(self, request: ActionRequest) -> Response:
        """Handle a request. Never raises."""
        try:
            return await self.handle(request)
        except StudyBuddyError as e:
            return error_response(e)
        except Exception:
            logger.exception("study-buddy-chat error")
            return error_response(UpstreamError())

    async def handle(self, request: ActionRequest) -> Response:
        """
        Forward a request upstream and shape the response for its action.

        Raises:
            RateLimitedError: Gateway answered 429
            QuotaExceededError: Gateway answered 402
            UpstreamTimeoutError: Gateway did not answer in time
            UpstreamError: Any other gateway or transport failure
        """
        payload = build_upstream_payload(request, self.settings.model)
        logger.info(
            "Action %s (%d messages, language=%s)",
            request.action.value,
            len(request.messages),
            request.language or "-",
        )

        client = self._client_factory()
        relayed = False
        try:
            upstream_request = client.build_request(
                "POST",
                self.settings.chat_completions_url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.settings.gateway_api_key}",
                    "Content-Type": "application/json",
                },
            )
            try:
                response = await client.send(upstream_request, stream=True)
            except httpx.TimeoutException as exc:
                raise UpstreamTimeoutError() from exc
            except httpx.HTTPError as exc:
                logger.error("AI gateway unreachable: %s", exc)
                raise UpstreamError() from exc

            try:
                if not response.is_success:
                    await self._raise_for_status(response)

                if request.action.is_streamed:
                    relayed = True
                    return StreamingResponse(
                        self._relay(response),
                        media_type="text/event-stream",
                        background=BackgroundTask(self._close, response, client),
                    )

                body = await response.aread()
            except httpx.TimeoutException as exc:
                raise UpstreamTimeoutError() from exc
            except httpx.HTTPError as exc:
                logger.error("AI gateway read failed: %s", exc)
                raise UpstreamError() from exc
            finally:
                if not relayed:
                    await response.aclose()

            return Response(content=body, media_type="application/json")
        finally:
            if not relayed:
                await client.aclose()

    async def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status == 429:
            raise RateLimitedError()
        if status == 402:
            raise QuotaExceededError()

        body = (await response.aread()).decode("utf-8", errors="replace")
        logger.error("AI gateway error: %s %s", status, body)
        raise UpstreamError()

    async def _relay(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Pass the gateway's stream through; a broken stream just ends."""
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            logger.error("AI gateway stream interrupted: %s", exc)

    @staticmethod
    async def _close(response: httpx.Response, client: httpx.AsyncClient) -> None:
        await response.aclose()
        await client.aclose()
