"""Tests for parsing generated study material."""

import json

import pytest

from study_buddy.artifacts import (
    Parsed,
    RawText,
    parse_artifact,
    podcast_from,
    require_parsed,
    strip_code_fences,
    writing_prompt_from,
)
from study_buddy.config import WRITING_PROMPT_FALLBACK_HINTS
from study_buddy.errors import ParseFailureError
from study_buddy.models import Action, MindMap, PodcastLesson, Quiz

QUIZ = {
    "title": "Neural Networks",
    "questions": [
        {
            "id": 1,
            "question": "What does a neuron compute?",
            "options": ["A) A sum", "B) A weighted sum plus bias", "C) A sort", "D) A hash"],
            "correctAnswer": 1,
            "explanation": "Weights and a bias, then an activation.",
        }
    ],
}


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences("```\n[1, 2]\n```") == "[1, 2]"

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseArtifact:
    def test_quiz(self):
        result = parse_artifact(Action.GENERATE_QUIZ, json.dumps(QUIZ))
        assert isinstance(result, Parsed)
        quiz = result.value
        assert isinstance(quiz, Quiz)
        assert quiz.questions[0].correct_answer == 1

    def test_quiz_inside_fence_and_prose(self):
        content = "Here is your quiz:\n```json\n" + json.dumps(QUIZ) + "\n```"
        result = parse_artifact(Action.GENERATE_QUIZ, content)
        assert isinstance(result, Parsed)
        assert result.value.title == "Neural Networks"

    def test_quiz_with_three_options_is_raw(self):
        bad = json.loads(json.dumps(QUIZ))
        bad["questions"][0]["options"].pop()
        content = json.dumps(bad)
        assert parse_artifact(Action.GENERATE_QUIZ, content) == RawText(content)

    def test_quiz_answer_out_of_range_is_raw(self):
        bad = json.loads(json.dumps(QUIZ))
        bad["questions"][0]["correctAnswer"] = 4
        assert isinstance(parse_artifact(Action.GENERATE_QUIZ, json.dumps(bad)), RawText)

    def test_quiz_with_string_ids(self):
        quiz = json.loads(json.dumps(QUIZ))
        quiz["questions"][0]["id"] = "q1"
        result = parse_artifact(Action.GENERATE_QUIZ, json.dumps(quiz))
        assert isinstance(result, Parsed)
        assert result.value.questions[0].id == "q1"

    def test_podcast_with_numeric_duration(self):
        content = '{"title": "CNNs", "content": "Welcome to the show.", "duration": 5}'
        result = parse_artifact(Action.GENERATE_PODCAST, content)
        assert isinstance(result, Parsed)
        assert result.value == PodcastLesson(
            title="CNNs", content="Welcome to the show.", duration="5"
        )

    def test_prose_is_raw(self):
        content = "Sorry, I can't make a quiz about that."
        assert parse_artifact(Action.GENERATE_QUIZ, content) == RawText(content)

    def test_flashcards(self):
        cards = [{"question": "What is ML?", "answer": "Learning from data"}]
        result = parse_artifact(Action.GENERATE_FLASHCARDS, json.dumps(cards))
        assert isinstance(result, Parsed)
        assert result.value[0].answer == "Learning from data"

    def test_mindmap_accepts_numeric_ids(self):
        content = json.dumps(
            {
                "title": "AI",
                "nodes": [{"id": 1, "label": "ML", "children": [{"id": 11, "label": "SVM"}]}],
            }
        )
        result = parse_artifact(Action.GENERATE_MINDMAP, content)
        assert isinstance(result, Parsed)
        mindmap = result.value
        assert isinstance(mindmap, MindMap)
        assert mindmap.nodes[0].id == "1"
        assert mindmap.nodes[0].children[0].children is None

    def test_text_actions_are_always_parsed(self):
        for action in (Action.GENERATE_NOTES, Action.SUMMARIZE, Action.EVALUATE_WRITING):
            assert parse_artifact(action, "# Notes") == Parsed("# Notes")


class TestFallbacks:
    def test_podcast_fallback_shape(self):
        lesson = podcast_from(RawText("Welcome to today's episode..."), "Transformers")
        assert lesson == PodcastLesson(
            title="Transformers",
            content="Welcome to today's episode...",
            duration="5 min",
        )

    def test_podcast_parsed_is_kept(self):
        content = json.dumps({"title": "T", "content": "Script", "duration": "7 min"})
        lesson = podcast_from(parse_artifact(Action.GENERATE_PODCAST, content), "ignored")
        assert lesson.duration == "7 min"

    def test_writing_prompt_fallback_uses_default_hints(self):
        prompt = writing_prompt_from(RawText("Explain overfitting."), "Overfitting")
        assert prompt.topic == "Overfitting"
        assert prompt.prompt == "Explain overfitting."
        assert prompt.hints == WRITING_PROMPT_FALLBACK_HINTS

    def test_require_parsed_raises_for_raw(self):
        with pytest.raises(ParseFailureError) as exc_info:
            require_parsed(RawText("nope"), Action.GENERATE_FLASHCARDS)
        assert "flashcards" in exc_info.value.message
