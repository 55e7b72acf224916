"""
Models - Wire types for requests, messages and generated artifacts.

Request types are what the router accepts; artifact types are what the
client builds out of the model's JSON answers.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Action(str, Enum):
    """Selects the instruction template and response policy for a request."""

    CHAT = "chat"
    GENERATE_QUIZ = "generate_quiz"
    GENERATE_FLASHCARDS = "generate_flashcards"
    GENERATE_MINDMAP = "generate_mindmap"
    GENERATE_NOTES = "generate_notes"
    GENERATE_INFOGRAPHIC = "generate_infographic"
    GENERATE_PODCAST = "generate_podcast"
    SUMMARIZE = "summarize"
    GENERATE_WRITING_PROMPT = "generate_writing_prompt"
    EVALUATE_WRITING = "evaluate_writing"

    @property
    def is_streamed(self) -> bool:
        """Only chat is streamed; every other action is buffered."""
        return self is Action.CHAT


class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ActionRequest(BaseModel):
    """Body of a POST to the router."""

    messages: list[Message] = Field(min_length=1, description="Conversation so far")
    action: Action = Field(description="What the router should do with the messages")
    topic: str | None = Field(default=None, description="Topic for generation actions")
    language: str | None = Field(default=None, description="Response language code")


class TranscriptionRequest(BaseModel):
    audio: str = Field(default="", description="Base64-encoded webm audio")


# =============================================================================
# ARTIFACTS
# =============================================================================


class QuizQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int | str
    question: str
    options: list[str] = Field(min_length=4, max_length=4)
    correct_answer: int = Field(alias="correctAnswer")
    explanation: str = ""

    @model_validator(mode="after")
    def _answer_in_range(self):
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(f"correctAnswer {self.correct_answer} is not an option index")
        return self


class Quiz(BaseModel):
    title: str
    questions: list[QuizQuestion] = Field(min_length=1)


class Flashcard(BaseModel):
    question: str
    answer: str


class MindMapNode(BaseModel):
    # Models sometimes number the nodes instead of quoting the ids
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    label: str
    children: list["MindMapNode"] | None = None


MindMapNode.model_rebuild()


class MindMap(BaseModel):
    title: str
    nodes: list[MindMapNode]


class PodcastLesson(BaseModel):
    # Models sometimes give the duration as a bare number
    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str
    content: str
    duration: str


class WritingPrompt(BaseModel):
    topic: str
    prompt: str
    hints: list[str] = Field(default_factory=list)
