"""
Client - Talks to the Study Buddy router on behalf of a UI.

Two kinds of calls:
1. open_chat_stream() - the raw event stream for a chat turn (used by
   study_buddy.streaming.Conversation)
2. generate_*() / summarize_text() / evaluate_writing() - buffered requests
   that return a typed artifact, or None when the generation failed

Failed generations never raise. The error is logged and kept on
client.last_error so the UI can say "rate limited" rather than "failed".

Example:
    client = StudyBuddyClient("http://localhost:8000")
    quiz = client.generate_quiz("neural networks")
    if quiz is None:
        print(client.last_error.message)
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from study_buddy.artifacts import (
    extract_message_content,
    parse_artifact,
    podcast_from,
    require_parsed,
    writing_prompt_from,
)
from study_buddy.config import (
    CHAT_PATH,
    CONNECT_TIMEOUT,
    DEFAULT_SERVER_URL,
    STREAM_READ_TIMEOUT,
    UPSTREAM_TIMEOUT,
)
from study_buddy.errors import (
    ParseFailureError,
    StreamStartError,
    StudyBuddyError,
    UpstreamError,
    UpstreamTimeoutError,
    error_from_payload,
)
from study_buddy.models import (
    Action,
    Flashcard,
    Message,
    MindMap,
    PodcastLesson,
    Quiz,
    WritingPrompt,
)

logger = logging.getLogger(__name__)


class StudyBuddyClient:
    """
    HTTP client for the Study Buddy router.

    Attributes:
        base_url: Where the router is served
        language: Default response language code sent with every request
        last_error: The error behind the most recent failed generation
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        api_key: str | None = None,
        language: str | None = None,
        timeout: float = UPSTREAM_TIMEOUT,
        stream_timeout: float = STREAM_READ_TIMEOUT,
        http_client: httpx.Client | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Router base URL
            api_key: Optional bearer key sent to the router
            language: Default response language code
            timeout: Seconds to wait for a buffered generation
            stream_timeout: Seconds to wait for the next bytes of a chat stream
            http_client: Pre-built httpx client (tests inject one)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.language = language
        self.last_error: StudyBuddyError | None = None
        self._timeout = httpx.Timeout(timeout, connect=CONNECT_TIMEOUT)
        self._stream_timeout = httpx.Timeout(stream_timeout, connect=CONNECT_TIMEOUT)
        self._http = http_client or httpx.Client()

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}{CHAT_PATH}"

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "StudyBuddyClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _body(
        self,
        action: Action,
        messages: list[Message],
        topic: str | None = None,
        language: str | None = None,
    ) -> dict:
        body = {
            "messages": [m.model_dump() for m in messages],
            "action": action.value,
        }
        if topic is not None:
            body["topic"] = topic
        language = language or self.language
        if language:
            body["language"] = language
        return body

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    @contextmanager
    def open_chat_stream(
        self,
        messages: list[Message],
        language: str | None = None,
    ) -> Iterator[Iterator[bytes]]:
        """
        Open a chat stream and yield an iterator over its raw bytes.

        The response is closed when the with-block exits, including when the
        caller stops reading early.

        Raises:
            StreamStartError: If the router does not answer with a success status
            UpstreamTimeoutError: If the stream stalls past the read timeout
            UpstreamError: If the connection breaks mid-stream
        """
        body = self._body(Action.CHAT, messages, language=language)
        started = False
        try:
            with self._http.stream(
                "POST",
                self.chat_url,
                json=body,
                headers=self._headers(),
                timeout=self._stream_timeout,
            ) as response:
                if not response.is_success:
                    response.read()
                    logger.error(
                        "Chat stream rejected: %s %s", response.status_code, response.text[:200]
                    )
                    raise StreamStartError(f"Failed to start stream (HTTP {response.status_code})")
                started = True
                yield response.iter_bytes()
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError() from exc
        except httpx.HTTPError as exc:
            if started:
                raise UpstreamError(f"Chat stream interrupted: {exc}") from exc
            raise StreamStartError(f"Failed to start stream: {exc}") from exc

    # -------------------------------------------------------------------------
    # Buffered generation
    # -------------------------------------------------------------------------

    def request_action(
        self,
        action: Action,
        prompt: str,
        topic: str | None = None,
        language: str | None = None,
    ) -> str:
        """
        Send a single-message request and return the model's text answer.

        Raises:
            StudyBuddyError: The router's error, rebuilt from its payload
            ParseFailureError: If the router answered without content
        """
        body = self._body(action, [Message(role="user", content=prompt)], topic, language)
        try:
            response = self._http.post(
                self.chat_url,
                json=body,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Could not reach Study Buddy: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            raise error_from_payload(response.status_code, data)

        content = extract_message_content(data)
        if not content:
            raise ParseFailureError("The AI returned an empty response.")
        return content

    def _generate(self, action: Action, prompt: str, topic: str | None, build):
        """Run one generation; returns None and records the error on failure."""
        self.last_error = None
        try:
            content = self.request_action(action, prompt, topic=topic)
            return build(parse_artifact(action, content))
        except StudyBuddyError as e:
            logger.error("%s failed: %s", action.value, e.message)
            self.last_error = e
            return None

    def generate_quiz(self, topic: str) -> Quiz | None:
        return self._generate(
            Action.GENERATE_QUIZ,
            f"Generate a quiz about: {topic}",
            topic,
            lambda result: require_parsed(result, Action.GENERATE_QUIZ),
        )

    def generate_flashcards(self, topic: str) -> list[Flashcard] | None:
        return self._generate(
            Action.GENERATE_FLASHCARDS,
            f"Generate flashcards about: {topic}",
            topic,
            lambda result: require_parsed(result, Action.GENERATE_FLASHCARDS),
        )

    def generate_mindmap(self, topic: str) -> MindMap | None:
        return self._generate(
            Action.GENERATE_MINDMAP,
            f"Generate a mind map about: {topic}",
            topic,
            lambda result: require_parsed(result, Action.GENERATE_MINDMAP),
        )

    def generate_notes(self, topic: str) -> str | None:
        return self._generate(
            Action.GENERATE_NOTES,
            f"Generate comprehensive study notes about: {topic}",
            topic,
            lambda result: result.value,
        )

    def generate_infographic(self, topic: str) -> str | None:
        return self._generate(
            Action.GENERATE_INFOGRAPHIC,
            f"Create an infographic summary about: {topic}",
            topic,
            lambda result: result.value,
        )

    def generate_podcast(self, topic: str) -> PodcastLesson | None:
        """Podcast answers that are not valid JSON become a plain-script lesson."""
        return self._generate(
            Action.GENERATE_PODCAST,
            f"Create a podcast-style lesson about: {topic}",
            topic,
            lambda result: podcast_from(result, topic),
        )

    def summarize_text(self, text: str) -> str | None:
        return self._generate(
            Action.SUMMARIZE,
            f"Summarize the following text concisely:\n\n{text}",
            None,
            lambda result: result.value,
        )

    def generate_writing_prompt(self, topic: str) -> WritingPrompt | None:
        """Writing prompts that are not valid JSON keep the text with default hints."""
        return self._generate(
            Action.GENERATE_WRITING_PROMPT,
            f"Create a writing prompt about: {topic}",
            topic,
            lambda result: writing_prompt_from(result, topic),
        )

    def evaluate_writing(self, prompt: str, response: str) -> str | None:
        return self._generate(
            Action.EVALUATE_WRITING,
            f"Evaluate this response to the writing prompt.\n\nPrompt: {prompt}\n\nResponse: {response}",
            None,
            lambda result: result.value,
        )
