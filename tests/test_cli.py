"""Tests for the terminal client's command handling."""

from conftest import chunked_router, sse_body

from study_buddy.interfaces import cli
from study_buddy.streaming import Conversation, ConversationState


class TestParseCommand:
    def test_question(self):
        assert cli.parse_command("  What is a GAN? ") == ("ask", ["What is a GAN?"])

    def test_command_with_topic(self):
        assert cli.parse_command("/Quiz neural networks") == ("quiz", ["neural", "networks"])

    def test_bare_command(self):
        assert cli.parse_command("/help") == ("help", [])

    def test_empty(self):
        assert cli.parse_command("   ") == ("empty", [])


class TestLanguage:
    def test_sets_client_and_conversation(self):
        client, _ = chunked_router(b"")
        conversation = Conversation(client)

        cli.handle_language(client, conversation, ["ZU"])

        assert client.language == "zu"
        assert conversation.language == "zu"

    def test_unknown_code_is_ignored(self):
        client, _ = chunked_router(b"")
        conversation = Conversation(client, language="af")

        cli.handle_language(client, conversation, ["klingon"])

        assert conversation.language == "af"


class TestStreamResponse:
    def test_streams_into_conversation(self):
        client, _ = chunked_router(sse_body("Gradient ", "descent"))
        conversation = Conversation(client)

        cli.stream_response(conversation, "Explain gradient descent")

        assert conversation.messages[-1].content == "Gradient descent"
        assert conversation.state is ConversationState.IDLE
