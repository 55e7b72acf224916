"""Tests for the generation methods of StudyBuddyClient, end to end through the app."""

import json

import httpx
from conftest import completion

from study_buddy.errors import ErrorKind
from study_buddy.models import Action


def answer(gateway, content: str) -> None:
    gateway.chat = httpx.Response(200, json=completion(content))


QUIZ = {
    "title": "CNNs",
    "questions": [
        {
            "id": 1,
            "question": "What does a convolution share across positions?",
            "options": ["A) Weights", "B) Labels", "C) Losses", "D) Batches"],
            "correctAnswer": 0,
            "explanation": "The same kernel slides over the input.",
        }
    ],
}


# ── Structured artifacts ────────────────────────────────────────────────────


class TestStructured:
    def test_generate_quiz(self, study_client, gateway):
        answer(gateway, "```json\n" + json.dumps(QUIZ) + "\n```")

        quiz = study_client.generate_quiz("CNNs")

        assert quiz is not None
        assert quiz.questions[0].options[0] == "A) Weights"
        assert study_client.last_error is None

        payload = gateway.last_chat_payload()
        assert payload["messages"][-1] == {"role": "user", "content": "Generate a quiz about: CNNs"}

    def test_unparseable_quiz_returns_none(self, study_client, gateway):
        answer(gateway, "I'd rather chat about CNNs.")
        assert study_client.generate_quiz("CNNs") is None
        assert study_client.last_error.kind is ErrorKind.PARSE_FAILURE

    def test_generate_flashcards(self, study_client, gateway):
        answer(gateway, json.dumps([{"question": "Epoch?", "answer": "One pass over the data"}]))
        cards = study_client.generate_flashcards("training")
        assert [c.question for c in cards] == ["Epoch?"]

    def test_generate_mindmap(self, study_client, gateway):
        answer(gateway, json.dumps({"title": "RL", "nodes": [{"id": "1", "label": "Agent"}]}))
        mindmap = study_client.generate_mindmap("RL")
        assert mindmap.title == "RL"

    def test_podcast_falls_back_to_plain_script(self, study_client, gateway):
        answer(gateway, "Hello listeners! Today we talk about attention.")
        lesson = study_client.generate_podcast("Attention")
        assert lesson.title == "Attention"
        assert lesson.content == "Hello listeners! Today we talk about attention."
        assert lesson.duration == "5 min"
        assert study_client.last_error is None

    def test_writing_prompt_falls_back_to_default_hints(self, study_client, gateway):
        answer(gateway, "Describe how gradient descent finds a minimum.")
        prompt = study_client.generate_writing_prompt("Gradient descent")
        assert prompt.prompt == "Describe how gradient descent finds a minimum."
        assert len(prompt.hints) == 3


# ── Text artifacts ──────────────────────────────────────────────────────────


class TestText:
    def test_notes(self, study_client, gateway):
        answer(gateway, "# Backpropagation\n\n- Chain rule")
        assert study_client.generate_notes("backprop").startswith("# Backpropagation")

    def test_summarize_sends_the_text(self, study_client, gateway):
        answer(gateway, "Short summary.")
        assert study_client.summarize_text("A very long passage.") == "Short summary."

        payload = gateway.last_chat_payload()
        assert payload["messages"][-1]["content"].endswith("A very long passage.")

    def test_evaluate_writing(self, study_client, gateway):
        answer(gateway, "Score: 8/10\nGood use of examples.")
        feedback = study_client.evaluate_writing("Explain overfitting.", "It memorises noise.")
        assert feedback.startswith("Score: 8/10")

        content = gateway.last_chat_payload()["messages"][-1]["content"]
        assert "Prompt: Explain overfitting." in content
        assert "Response: It memorises noise." in content

    def test_language_is_forwarded(self, study_client, gateway):
        study_client.language = "af"
        answer(gateway, "Notas")
        study_client.generate_notes("ML")
        assert "Afrikaans" in gateway.last_chat_payload()["messages"][0]["content"]


# ── Failures ────────────────────────────────────────────────────────────────


class TestFailures:
    def test_rate_limited(self, study_client, gateway):
        gateway.chat = httpx.Response(429)
        assert study_client.generate_notes("ML") is None
        assert study_client.last_error.kind is ErrorKind.RATE_LIMITED
        assert study_client.last_error.message == "Rate limits exceeded, please try again later."

    def test_quota_exceeded(self, study_client, gateway):
        gateway.chat = httpx.Response(402)
        assert study_client.generate_flashcards("ML") is None
        assert study_client.last_error.kind is ErrorKind.QUOTA_EXCEEDED

    def test_empty_content(self, study_client, gateway):
        answer(gateway, "")
        assert study_client.generate_notes("ML") is None
        assert study_client.last_error.kind is ErrorKind.PARSE_FAILURE

    def test_last_error_is_cleared_on_success(self, study_client, gateway):
        gateway.chat = httpx.Response(429)
        study_client.generate_notes("ML")
        answer(gateway, "Notes")
        assert study_client.generate_notes("ML") == "Notes"
        assert study_client.last_error is None

    def test_request_action_uses_action_value(self, study_client, gateway):
        answer(gateway, "ok")
        study_client.request_action(Action.GENERATE_INFOGRAPHIC, "Create an infographic")
        assert gateway.last_chat_payload()["stream"] is False
