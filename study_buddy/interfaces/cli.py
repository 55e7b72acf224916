#!/usr/bin/env python3
"""
CLI Interface - Interactive command-line study session.

This module provides a terminal interface for Study Buddy. It supports:
- Free-form questions, streamed as the tutor answers
- Quizzes (/quiz), flashcards (/flashcards) and mind maps (/mindmap)
- Notes (/notes), infographic summaries (/infographic) and podcast lessons (/podcast)
- Summaries (/summarize) and writing practice with feedback (/write)
- Response language selection (/language)

The CLI talks to a running Study Buddy server.

Run with:
    python -m study_buddy --server http://localhost:8000
"""

import argparse

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table
from rich.tree import Tree

from study_buddy.client import StudyBuddyClient
from study_buddy.config import DEFAULT_LANGUAGE, DEFAULT_SERVER_URL, LANGUAGES
from study_buddy.errors import ConversationBusyError, ErrorKind
from study_buddy.logging_utils import setup_logging
from study_buddy.models import MindMapNode, Quiz
from study_buddy.streaming import Conversation


# Rich console for beautiful output
console = Console()


def print_welcome():
    """Print welcome message and instructions."""
    welcome_text = """
[bold blue]Welcome to Study Buddy![/bold blue]

I'm your AI tutor for Artificial Intelligence topics. Ask me about:

• [cyan]Machine Learning[/cyan] - supervised, unsupervised, evaluation
• [cyan]Deep Learning[/cyan] - neural networks, backpropagation, transformers
• [cyan]NLP & Computer Vision[/cyan] - language and image models
• [cyan]AI Ethics[/cyan] - fairness, privacy, safety

[dim]Type /help for all commands[/dim]
"""
    console.print(Panel(welcome_text, border_style="blue"))


def print_help():
    """Print help message with available commands."""
    table = Table(title="Available Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="dim")

    commands = [
        ("(any question)", "Chat with your tutor", "What is overfitting?"),
        ("/quiz <topic>", "Take a 5-question quiz", "/quiz neural networks"),
        ("/flashcards <topic>", "Generate flashcards", "/flashcards NLP"),
        ("/mindmap <topic>", "Show a mind map", "/mindmap reinforcement learning"),
        ("/notes <topic>", "Generate study notes", "/notes decision trees"),
        ("/infographic <topic>", "Infographic-style summary", "/infographic CNNs"),
        ("/podcast <topic>", "Podcast-style lesson", "/podcast transformers"),
        ("/summarize <text>", "Summarize a passage", "/summarize Gradient descent is..."),
        ("/write <topic>", "Writing practice with feedback", "/write AI ethics"),
        ("/language [code]", "Show or set the response language", "/language zu"),
        ("/clear", "Clear the conversation", "/clear"),
        ("/help", "Show this help message", "/help"),
        ("/exit", "Exit Study Buddy", "/exit"),
    ]

    for cmd, desc, example in commands:
        table.add_row(cmd, desc, example)

    console.print(table)


def parse_command(user_input: str) -> tuple[str, list[str]]:
    """
    Parse user input into command and arguments.

    Returns:
        Tuple of (command, arguments)
        For regular questions, command is 'ask'
    """
    user_input = user_input.strip()

    if not user_input:
        return ("empty", [])

    if user_input.startswith("/"):
        parts = user_input[1:].split(maxsplit=1)
        command = parts[0].lower() if parts else ""
        args = parts[1].split() if len(parts) > 1 else []
        return (command, args)

    return ("ask", [user_input])


def report_failure(client: StudyBuddyClient, what: str):
    """Explain why a generation failed."""
    error = client.last_error
    if error is None:
        console.print(f"[red]Could not generate {what}.[/red]")
    elif error.kind in (ErrorKind.RATE_LIMITED, ErrorKind.QUOTA_EXCEEDED):
        console.print(f"[yellow]{error.message}[/yellow]")
    else:
        console.print(f"[red]Could not generate {what}: {error.message}[/red]")


def stream_response(conversation: Conversation, question: str):
    """Stream a response with a live Markdown display."""
    try:
        turn = conversation.send(question)
    except ConversationBusyError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        return

    console.print("\n[bold green]🎓 Study Buddy:[/bold green]")

    try:
        with Live(console=console, refresh_per_second=10) as live:
            for content in turn:
                live.update(Markdown(content))
    finally:
        turn.close()

    if turn.error is not None:
        console.print("[yellow]Make sure the Study Buddy server is running.[/yellow]")


def run_quiz(quiz: Quiz):
    """Ask each question and reveal the answer."""
    console.print(f"\n[bold green]📝 {quiz.title}[/bold green]")
    score = 0

    for number, question in enumerate(quiz.questions, 1):
        console.print(f"\n[bold]Q{number}: {question.question}[/bold]")
        for index, option in enumerate(question.options, 1):
            console.print(f"  {index}. {option}")

        answer = IntPrompt.ask(
            "[cyan]Your answer[/cyan]",
            choices=[str(i) for i in range(1, len(question.options) + 1)],
        )
        if answer - 1 == question.correct_answer:
            score += 1
            console.print("[green]✓ Correct![/green]")
        else:
            correct = question.options[question.correct_answer]
            console.print(f"[red]✗ The answer is: {correct}[/red]")
        if question.explanation:
            console.print(f"[dim]{question.explanation}[/dim]")

    console.print(f"\n[bold]Score: {score}/{len(quiz.questions)}[/bold]")


def handle_quiz(client: StudyBuddyClient, args: list[str]):
    """Handle /quiz command."""
    if not args:
        console.print("[yellow]Usage: /quiz <topic>[/yellow]")
        return

    topic = " ".join(args)
    with console.status(f"[bold green]Writing a quiz about {topic}...", spinner="dots"):
        quiz = client.generate_quiz(topic)

    if quiz is None:
        report_failure(client, "a quiz")
        return
    run_quiz(quiz)


def handle_flashcards(client: StudyBuddyClient, args: list[str]):
    """Handle /flashcards command."""
    if not args:
        console.print("[yellow]Usage: /flashcards <topic>[/yellow]")
        return

    topic = " ".join(args)
    with console.status(f"[bold green]Making flashcards about {topic}...", spinner="dots"):
        flashcards = client.generate_flashcards(topic)

    if flashcards is None:
        report_failure(client, "flashcards")
        return

    table = Table(title=f"🗂️ Flashcards: {topic}", show_header=True, header_style="bold cyan")
    table.add_column("Question", style="white")
    table.add_column("Answer", style="green")
    for card in flashcards:
        table.add_row(card.question, card.answer)
    console.print(table)


def _add_branches(tree: Tree, nodes: list[MindMapNode]):
    for node in nodes:
        branch = tree.add(node.label)
        if node.children:
            _add_branches(branch, node.children)


def handle_mindmap(client: StudyBuddyClient, args: list[str]):
    """Handle /mindmap command."""
    if not args:
        console.print("[yellow]Usage: /mindmap <topic>[/yellow]")
        return

    topic = " ".join(args)
    with console.status(f"[bold green]Mapping {topic}...", spinner="dots"):
        mindmap = client.generate_mindmap(topic)

    if mindmap is None:
        report_failure(client, "a mind map")
        return

    tree = Tree(f"[bold blue]🧠 {mindmap.title}[/bold blue]")
    _add_branches(tree, mindmap.nodes)
    console.print(tree)


def handle_text(client: StudyBuddyClient, args: list[str], command: str):
    """Handle /notes and /infographic commands."""
    if not args:
        console.print(f"[yellow]Usage: /{command} <topic>[/yellow]")
        return

    topic = " ".join(args)
    generate = client.generate_notes if command == "notes" else client.generate_infographic
    with console.status("[bold green]Thinking...", spinner="dots"):
        text = generate(topic)

    if text is None:
        report_failure(client, command)
        return
    console.print(Markdown(text))


def handle_podcast(client: StudyBuddyClient, args: list[str]):
    """Handle /podcast command."""
    if not args:
        console.print("[yellow]Usage: /podcast <topic>[/yellow]")
        return

    topic = " ".join(args)
    with console.status("[bold green]Recording your lesson...", spinner="dots"):
        lesson = client.generate_podcast(topic)

    if lesson is None:
        report_failure(client, "a podcast lesson")
        return

    console.print(Panel(
        Markdown(lesson.content),
        title=f"🎧 {lesson.title}",
        subtitle=lesson.duration,
        border_style="magenta",
    ))


def handle_summarize(client: StudyBuddyClient, args: list[str]):
    """Handle /summarize command."""
    if not args:
        console.print("[yellow]Usage: /summarize <text>[/yellow]")
        return

    with console.status("[bold green]Summarizing...", spinner="dots"):
        summary = client.summarize_text(" ".join(args))

    if summary is None:
        report_failure(client, "a summary")
        return
    console.print(Panel(Markdown(summary), title="📄 Summary", border_style="green"))


def handle_write(client: StudyBuddyClient, args: list[str]):
    """Handle /write command: prompt, learner response, feedback."""
    if not args:
        console.print("[yellow]Usage: /write <topic>[/yellow]")
        return

    topic = " ".join(args)
    with console.status("[bold green]Preparing a writing prompt...", spinner="dots"):
        prompt = client.generate_writing_prompt(topic)

    if prompt is None:
        report_failure(client, "a writing prompt")
        return

    console.print(Panel(prompt.prompt, title=f"✍️ {prompt.topic}", border_style="cyan"))
    for hint in prompt.hints:
        console.print(f"  [dim]• {hint}[/dim]")

    response = Prompt.ask("\n[bold cyan]Your response[/bold cyan]")
    if not response.strip():
        return

    with console.status("[bold green]Reading your response...", spinner="dots"):
        feedback = client.evaluate_writing(prompt.prompt, response)

    if feedback is None:
        report_failure(client, "feedback")
        return
    console.print(Panel(Markdown(feedback), title="💬 Feedback", border_style="green"))


def handle_language(client: StudyBuddyClient, conversation: Conversation, args: list[str]):
    """Handle /language command."""
    if not args:
        table = Table(title="Languages", show_header=True, header_style="bold cyan")
        table.add_column("Code", style="cyan")
        table.add_column("Language", style="white")
        for code, (name, native_name, _) in LANGUAGES.items():
            marker = " ✓" if code == (conversation.language or DEFAULT_LANGUAGE) else ""
            table.add_row(code, f"{native_name}{marker}")
        console.print(table)
        return

    code = args[0].lower()
    if code not in LANGUAGES:
        console.print(f"[yellow]Unknown language '{code}'. Type /language to see the list.[/yellow]")
        return

    client.language = code
    conversation.language = code
    console.print(f"[green]Responses will now be in {LANGUAGES[code][1]}.[/green]")


def main():
    """Main CLI loop."""
    parser = argparse.ArgumentParser(description="Study Buddy CLI")
    parser.add_argument("--server", default=DEFAULT_SERVER_URL, help="Study Buddy server URL")
    parser.add_argument("--language", default=None, help="Response language code")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level.upper(), console=Console(stderr=True))
    print_welcome()

    client = StudyBuddyClient(args.server, language=args.language)
    conversation = Conversation(client, language=args.language)

    console.print(f"[dim]📡 Connected to {client.base_url}[/dim]\n")

    # Main loop
    while True:
        try:
            user_input = Prompt.ask("[bold cyan]You[/bold cyan]")

            command, args_ = parse_command(user_input)

            if command == "empty":
                continue

            elif command == "exit" or command == "quit":
                console.print("\n[bold blue]Goodbye! Keep learning! 📚[/bold blue]")
                break

            elif command == "help":
                print_help()

            elif command == "clear":
                conversation.clear()
                console.clear()
                print_welcome()

            elif command == "quiz":
                handle_quiz(client, args_)

            elif command == "flashcards":
                handle_flashcards(client, args_)

            elif command == "mindmap":
                handle_mindmap(client, args_)

            elif command in ("notes", "infographic"):
                handle_text(client, args_, command)

            elif command == "podcast":
                handle_podcast(client, args_)

            elif command == "summarize":
                handle_summarize(client, args_)

            elif command == "write":
                handle_write(client, args_)

            elif command == "language":
                handle_language(client, conversation, args_)

            elif command == "ask":
                question = args_[0] if args_ else ""
                if question:
                    stream_response(conversation, question)

            else:
                # Unknown command - treat as question
                full_input = f"/{command} {' '.join(args_)}".strip()
                console.print("[yellow]Unknown command. Treating as question...[/yellow]")
                stream_response(conversation, full_input)

            console.print()

        except KeyboardInterrupt:
            console.print("\n\n[bold blue]Goodbye! Keep learning! 📚[/bold blue]")
            break
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            console.print("[dim]Type /help for available commands[/dim]")

    client.close()


if __name__ == "__main__":
    main()
