"""
Configuration settings for the Study Buddy application.

This file centralizes all configuration so you can easily adjust parameters:
- Module constants hold defaults, limits and the instruction templates
- The Settings dataclass holds everything read from the environment and is
  injected into the router and the client

Settings are validated once, at startup. A missing secret is fatal.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from study_buddy.errors import ConfigurationMissingError

# =============================================================================
# GATEWAY CONFIGURATION
# =============================================================================

# Default upstream: a local Ollama server exposes an OpenAI-compatible API
# under /v1. Any chat-completions gateway with the same wire format works.
DEFAULT_GATEWAY_BASE_URL = "http://localhost:11434/v1"

# llama3.2 is a good balance of speed and quality for tutoring.
# Other options: mistral, phi3, gemma2
DEFAULT_MODEL = "llama3.2"

# Transcription goes to an OpenAI-compatible /audio/transcriptions endpoint
DEFAULT_TRANSCRIPTION_BASE_URL = "https://api.openai.com/v1"
TRANSCRIPTION_MODEL = "whisper-1"

# Where the web app listens
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Where the CLI finds the web app
DEFAULT_SERVER_URL = "http://localhost:8000"

# Router endpoint paths
CHAT_PATH = "/api/study-buddy-chat"
TRANSCRIBE_PATH = "/api/transcribe"

# =============================================================================
# TIMEOUTS (seconds)
# =============================================================================

# Longest wait for the next bytes of a chat stream on the client side
STREAM_READ_TIMEOUT = 60.0

# Longest wait for a buffered (non-chat) upstream response
UPSTREAM_TIMEOUT = 120.0

# Time allowed to establish any connection
CONNECT_TIMEOUT = 10.0

# =============================================================================
# STREAMING CONFIGURATION
# =============================================================================

# Event-stream framing
SSE_DATA_PREFIX = "data: "
SSE_COMMENT_PREFIX = ":"
SSE_DONE_TOKEN = "[DONE]"

# Upper bound on a single buffered line (bytes of text) before the stream
# is treated as broken
MAX_LINE_BUFFER = 1024 * 1024

# Shown in place of the assistant reply when a turn fails
FALLBACK_ASSISTANT_MESSAGE = "Sorry, I encountered an error. Please try again."

# =============================================================================
# AUDIO CONFIGURATION
# =============================================================================

# Base64 characters decoded per step. Must be a multiple of 4 so every slice
# decodes on its own.
BASE64_CHUNK_SIZE = 32768

# =============================================================================
# ARTIFACT DEFAULTS
# =============================================================================

PODCAST_FALLBACK_DURATION = "5 min"

WRITING_PROMPT_FALLBACK_HINTS = [
    "Think about the key concepts",
    "Use examples to illustrate",
    "Summarize your understanding",
]

# =============================================================================
# LANGUAGES
# =============================================================================

# South African official languages plus SA Sign Language.
# Each entry: code -> (name, native name, is sign language)
LANGUAGES: dict[str, tuple[str, str, bool]] = {
    "en": ("English", "English", False),
    "af": ("Afrikaans", "Afrikaans", False),
    "zu": ("isiZulu", "isiZulu", False),
    "xh": ("isiXhosa", "isiXhosa", False),
    "nso": ("Sepedi", "Sepedi (Northern Sotho)", False),
    "tn": ("Setswana", "Setswana", False),
    "st": ("Sesotho", "Sesotho (Southern Sotho)", False),
    "ts": ("Xitsonga", "Xitsonga", False),
    "ss": ("siSwati", "siSwati", False),
    "ve": ("Tshivenda", "Tshivenda", False),
    "nr": ("isiNdebele", "isiNdebele", False),
    "sasl": ("SA Sign Language", "South African Sign Language", True),
}

DEFAULT_LANGUAGE = "en"

SIGN_LANGUAGE_PROMPT = """IMPORTANT: The user prefers South African Sign Language (SASL).
When explaining concepts:
1. Describe visual representations and gestures where applicable
2. Use simple, clear sentence structures that translate well to sign language
3. When relevant, mention that certain concepts have specific signs in SASL
4. Focus on visual analogies and spatial descriptions
5. Provide step-by-step visual instructions when explaining processes"""

SPOKEN_LANGUAGE_PROMPT = """IMPORTANT: Please respond in {native_name} ({name}).
If you cannot fully respond in {native_name}, provide the response in both {native_name} and English,
with the {native_name} translation first."""


def get_language_prompt(language_code: str | None) -> str:
    """
    Build the extra guidance appended to an instruction for a language.

    Returns an empty string for unknown or empty codes.
    """
    if not language_code or language_code not in LANGUAGES:
        return ""

    name, native_name, is_sign_language = LANGUAGES[language_code]
    if is_sign_language:
        return SIGN_LANGUAGE_PROMPT

    return SPOKEN_LANGUAGE_PROMPT.format(name=name, native_name=native_name)


# =============================================================================
# INSTRUCTION TEMPLATES
# =============================================================================
# One fixed template per action. The router prepends exactly one of these as
# the system message of every upstream request.

CHAT_INSTRUCTION = """You are an AI Study Buddy specializing in Artificial Intelligence topics including:
- Machine Learning (ML)
- Deep Learning
- Natural Language Processing (NLP)
- Computer Vision
- Neural Networks
- Reinforcement Learning
- AI Ethics
- Data Science fundamentals

You should:
1. Answer questions clearly and concisely about AI topics
2. Provide examples when helpful
3. Suggest related topics the user might want to explore
4. If asked about non-AI topics, politely redirect to AI-related subjects

Always be encouraging and supportive of the learner's journey."""

QUIZ_INSTRUCTION = """You are a quiz generator for AI/ML topics. Generate a quiz based on the topic provided.
Return a JSON object with the following structure:
{
  "title": "Quiz title",
  "questions": [
    {
      "id": 1,
      "question": "Question text",
      "options": ["A) Option 1", "B) Option 2", "C) Option 3", "D) Option 4"],
      "correctAnswer": 0,
      "explanation": "Brief explanation of the correct answer"
    }
  ]
}
Generate 5 questions. Make them progressively harder. Only output valid JSON, no markdown."""

FLASHCARDS_INSTRUCTION = """You are a flashcard generator for AI/ML topics. Generate flashcards based on the topic provided.
Return a JSON array with the following structure:
[
  {
    "question": "Front of flashcard (question/term)",
    "answer": "Back of flashcard (answer/definition)"
  }
]
Generate 5-8 flashcards covering key concepts. Only output valid JSON, no markdown."""

MINDMAP_INSTRUCTION = """You are a mind map generator for AI/ML topics. Generate a mind map structure based on the topic provided.
Return a JSON object with the following structure:
{
  "title": "Main Topic",
  "nodes": [
    {
      "id": "1",
      "label": "Central concept",
      "children": [
        {"id": "1-1", "label": "Sub-concept 1", "children": []},
        {"id": "1-2", "label": "Sub-concept 2", "children": [{"id": "1-2-1", "label": "Detail"}]}
      ]
    }
  ]
}
Create a comprehensive mind map with 3-4 main branches and 2-3 sub-branches each. Only output valid JSON, no markdown."""

NOTES_INSTRUCTION = """You are a study notes generator for AI/ML topics. Generate comprehensive study notes based on the topic provided.
Create well-structured notes with:
- Clear headings and subheadings
- Key definitions
- Important concepts explained simply
- Examples where helpful
- Summary points at the end

Format the notes in a clear, readable way using markdown-style formatting."""

INFOGRAPHIC_INSTRUCTION = """You are a visual learning designer for AI/ML topics. Create an infographic-style summary of the topic provided.
Organize the content into short, scannable sections:
- A one-line headline
- 3-5 key facts, each with a short label
- A simple step-by-step process or comparison where relevant
- A "Remember" box with the single most important takeaway

Keep every line short. Use markdown headings and bullet points."""

PODCAST_INSTRUCTION = """You are a friendly podcast host teaching AI/ML topics. Write a podcast-style lesson about the topic provided.
Return a JSON object with the following structure:
{
  "title": "Episode title",
  "content": "The full script, written to be read aloud in a conversational tone",
  "duration": "Estimated listening time, e.g. 5 min"
}
Keep the script between 400 and 700 words. Only output valid JSON, no markdown."""

SUMMARIZE_INSTRUCTION = """You are a study assistant that summarizes learning material.
Summarize the text provided:
- Keep the key ideas and definitions
- Remove repetition and filler
- Use short paragraphs or bullet points
- End with one sentence stating the main takeaway"""

WRITING_PROMPT_INSTRUCTION = """You are a writing coach for AI/ML learners. Create a writing prompt about the topic provided.
Return a JSON object with the following structure:
{
  "topic": "The topic",
  "prompt": "A clear, open-ended writing task",
  "hints": ["Hint 1", "Hint 2", "Hint 3"]
}
The task should take 10-15 minutes to answer. Only output valid JSON, no markdown."""

EVALUATE_WRITING_INSTRUCTION = """You are a supportive writing coach for AI/ML learners. Evaluate the learner's response to a writing prompt.
Give feedback with:
- A score out of 10 on the first line, formatted as "Score: N/10"
- What the learner did well
- Concepts that are missing or inaccurate
- One concrete suggestion for improvement

Be encouraging and specific."""


# =============================================================================
# SETTINGS
# =============================================================================

ENV_PREFIX = "STUDY_BUDDY_"


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings, validated once at startup.

    Attributes:
        gateway_api_key: Bearer key for the chat-completion gateway
        auth_url: Base URL of the auth service used to verify user tokens
        auth_api_key: Backend credential sent to the auth service
        gateway_base_url: Base URL of the OpenAI-compatible gateway
        model: Model name sent upstream
        transcription_base_url: Base URL of the transcription service
        upstream_timeout: Seconds to wait for a buffered upstream response
        connect_timeout: Seconds allowed to connect upstream
    """

    gateway_api_key: str
    auth_url: str
    auth_api_key: str
    gateway_base_url: str = DEFAULT_GATEWAY_BASE_URL
    model: str = DEFAULT_MODEL
    transcription_base_url: str = DEFAULT_TRANSCRIPTION_BASE_URL
    upstream_timeout: float = UPSTREAM_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT

    def __post_init__(self):
        missing = [
            ENV_PREFIX + name.upper()
            for name in ("gateway_api_key", "auth_url", "auth_api_key")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationMissingError(missing)

    @property
    def chat_completions_url(self) -> str:
        return f"{self.gateway_base_url.rstrip('/')}/chat/completions"

    @property
    def transcriptions_url(self) -> str:
        return f"{self.transcription_base_url.rstrip('/')}/audio/transcriptions"

    @property
    def auth_user_url(self) -> str:
        return f"{self.auth_url.rstrip('/')}/auth/v1/user"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """
        Load settings from the process environment (and a .env file).

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Raises:
            ConfigurationMissingError: If any required secret is absent
        """
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)

        def get(name: str, default: str = "") -> str:
            return (environ.get(ENV_PREFIX + name) or default).strip()

        return cls(
            gateway_api_key=get("GATEWAY_API_KEY"),
            auth_url=get("AUTH_URL"),
            auth_api_key=get("AUTH_API_KEY"),
            gateway_base_url=get("GATEWAY_BASE_URL", DEFAULT_GATEWAY_BASE_URL),
            model=get("MODEL", DEFAULT_MODEL),
            transcription_base_url=get(
                "TRANSCRIPTION_BASE_URL", DEFAULT_TRANSCRIPTION_BASE_URL
            ),
            upstream_timeout=float(get("UPSTREAM_TIMEOUT", str(UPSTREAM_TIMEOUT))),
            connect_timeout=float(get("CONNECT_TIMEOUT", str(CONNECT_TIMEOUT))),
        )
