"""
Artifacts - Defensive parsing of generated study material.

The model is asked for strict JSON, but it does not always comply: it may
wrap the JSON in a markdown code fence, add a sentence before it, or return
prose. Parsing therefore yields an explicit result instead of raising:

    Parsed(value)   - the content matched the artifact's shape
    RawText(text)   - it did not; text is the untouched model output

Each caller decides what RawText means for its action:
- podcast and writing prompt: wrap the text in a minimal valid artifact
- quiz, flashcards and mind map: the generation failed
"""

import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from study_buddy.config import PODCAST_FALLBACK_DURATION, WRITING_PROMPT_FALLBACK_HINTS
from study_buddy.errors import ParseFailureError
from study_buddy.models import (
    Action,
    Flashcard,
    MindMap,
    PodcastLesson,
    Quiz,
    WritingPrompt,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T


@dataclass(frozen=True)
class RawText:
    text: str


ParseResult = Parsed | RawText

# Actions whose answer is JSON, and the shape it must have
_ADAPTERS: dict[Action, TypeAdapter] = {
    Action.GENERATE_QUIZ: TypeAdapter(Quiz),
    Action.GENERATE_FLASHCARDS: TypeAdapter(list[Flashcard]),
    Action.GENERATE_MINDMAP: TypeAdapter(MindMap),
    Action.GENERATE_PODCAST: TypeAdapter(PodcastLesson),
    Action.GENERATE_WRITING_PROMPT: TypeAdapter(WritingPrompt),
}

STRUCTURED_ACTIONS = frozenset(_ADAPTERS)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence, if any."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1).strip() if match else stripped


def _json_candidates(text: str) -> list[str]:
    """
    Strings worth trying as JSON, most likely first.

    The fenced/stripped text, then the span between the first opening and
    the last closing bracket (drops any prose around the JSON).
    """
    unfenced = strip_code_fences(text)
    candidates = [unfenced]
    for opener, closer in (("{", "}"), ("[", "]")):
        start = unfenced.find(opener)
        end = unfenced.rfind(closer)
        if start != -1 and end > start:
            span = unfenced[start:end + 1]
            if span not in candidates:
                candidates.append(span)
    return candidates


def parse_artifact(action: Action, content: str) -> ParseResult:
    """
    Parse the model's answer for an action.

    Text actions (notes, infographic, summary, feedback) always parse to
    their text.

    Args:
        action: The action that produced the content
        content: choices[0].message.content from the gateway

    Returns:
        Parsed with the typed artifact, or RawText with the original content
    """
    adapter = _ADAPTERS.get(action)
    if adapter is None:
        return Parsed(content)

    for candidate in _json_candidates(content):
        try:
            return Parsed(adapter.validate_json(candidate))
        except ValidationError:
            continue
    return RawText(content)


def podcast_from(result: ParseResult, topic: str) -> PodcastLesson:
    if isinstance(result, Parsed):
        return result.value
    return PodcastLesson(
        title=topic,
        content=result.text,
        duration=PODCAST_FALLBACK_DURATION,
    )


def writing_prompt_from(result: ParseResult, topic: str) -> WritingPrompt:
    if isinstance(result, Parsed):
        return result.value
    return WritingPrompt(
        topic=topic,
        prompt=result.text,
        hints=list(WRITING_PROMPT_FALLBACK_HINTS),
    )


def require_parsed(result: ParseResult, action: Action) -> Any:
    """
    Unwrap a result for actions that have no fallback.

    Raises:
        ParseFailureError: If the content did not match the artifact shape
    """
    if isinstance(result, Parsed):
        return result.value
    raise ParseFailureError(f"Could not read the generated {action.value.removeprefix('generate_')}")


def extract_message_content(data: object) -> str | None:
    """Pull choices[0].message.content out of a buffered gateway response."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None
