"""Interactive CLI application."""
import argparse
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from latin_tutor.config import DEFAULT_DB_PATH, DEFAULT_SESSION_SIZE
from latin_tutor.db import init_db
from latin_tutor.engine import ReviewEngine
from latin_tutor.errors import ImportFormatError, ReviewItemNotFoundError
from latin_tutor.importer import import_lesson_file
from latin_tutor.logging_config import configure_logging
from latin_tutor.models import MatchingQuestion, MultipleChoiceQuestion, ReviewState
from latin_tutor.seed import is_seeded, seed_all
from latin_tutor.session import SessionState
from latin_tutor.settings import get_int_setting, set_setting

console = Console()

SESSION_SIZE_SETTING = "session_size"
LESSON_CEILING_SETTING = "lesson_ceiling"
SKIP = "skip"
EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """The learner asked to leave the current quiz or review."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def choose_option(options: list) -> str:
    """Show lettered options and return the chosen option's text, or ``skip``."""
    letters = "abcdefgh"[:len(options)]
    for letter, option in zip(letters, options):
        console.print(f"  [cyan]{letter})[/cyan] {option}")
    choice = session_prompt("\nYour answer", choices=[*letters, SKIP, *EXIT_WORDS])
    if choice == SKIP:
        return SKIP
    return options[letters.index(choice)]


def show_welcome():
    console.print(Panel(
        "[bold]Church Latin Tutor[/bold]\n[dim]Lessons, quizzes and spaced review[/dim]",
        title="Salve!", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("lesson", "Study a lesson and take its quiz"),
        ("review", "Review due items"),
        ("queue", "Due and upcoming review items"),
        ("suspend", "Suspend or unsuspend an item"),
        ("import", "Add lessons from a JSON/YAML file"),
        ("settings", "Session size and lesson progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


# --- Lessons and quizzes ---

def ask_quiz_question(question, number: int, total: int) -> str:
    console.print(f"[bold]Q{number}/{total}.[/bold] {question.prompt}\n")
    match question:
        case MultipleChoiceQuestion(options=options):
            answer = choose_option(list(options))
            return "" if answer == SKIP else answer
        case MatchingQuestion(options=options):
            console.print(f"  [dim]Meanings: {', '.join(options)}[/dim]")
            return session_prompt("Pairs as 'word - meaning', separated by commas")
        case _:
            return session_prompt("Your answer")


def run_quiz(engine: ReviewEngine, lesson_ref: int) -> None:
    questions = engine.take_quiz(lesson_ref)
    if not questions:
        console.print("[yellow]No questions available for this lesson![/yellow]")
        return
    console.print(f"\n[bold]Lesson {lesson_ref} Quiz[/bold] - {len(questions)} questions\n")
    answers = [ask_quiz_question(q, i, len(questions)) for i, q in enumerate(questions, 1)]

    result = engine.submit_quiz(questions, answers)
    console.print(f"\n[bold]Score: {result.correct}/{result.total} ({result.score:.0f}%)[/bold]")
    for question in result.missed:
        answer = question.correct_answer
        shown = answer if isinstance(answer, str) else "; ".join(answer)
        console.print(f"  [red]Missed:[/red] {question.prompt.splitlines()[0]}  [green]{shown}[/green]")
        if question.explanation:
            console.print(f"    [dim]{question.explanation}[/dim]")
    if result.missed:
        console.print("[dim]Missed questions were added to your review queue.[/dim]")


def show_vocabulary(engine: ReviewEngine, lesson_ref: int) -> None:
    words = engine.catalogue.get_vocabulary(lesson_ref)
    if not words:
        return
    table = Table(title="Vocabulary")
    table.add_column("Latin", style="cyan")
    table.add_column("English")
    table.add_column("Notes", style="dim")
    for w in words:
        table.add_row(w.word, w.meaning, w.case_info or w.conjugation_info or w.part_of_speech or "")
    console.print(table)


def cmd_lesson(engine: ReviewEngine):
    lessons = [engine.catalogue.get_lesson(n) for n in engine.catalogue.lesson_numbers()]
    if not lessons:
        console.print("[yellow]No lessons yet. Use 'import' to add some.[/yellow]")
        return
    for lesson in lessons:
        console.print(f"  [cyan]{lesson['lesson_number']}[/cyan]) {lesson['title']}")
    lesson_ref = IntPrompt.ask("Select lesson", choices=[str(l["lesson_number"]) for l in lessons])

    # Quizzes start generating while the learner reads the vocabulary
    engine.load_lesson(lesson_ref)
    try:
        lesson = engine.catalogue.get_lesson(lesson_ref)
        console.print(Panel(f"[bold]{lesson['title']}[/bold]", title=f"Lesson {lesson_ref}"))
        show_vocabulary(engine, lesson_ref)
        ceiling = get_int_setting(engine.db_path, LESSON_CEILING_SETTING, 1)
        if lesson_ref > ceiling:
            set_setting(engine.db_path, LESSON_CEILING_SETTING, str(lesson_ref))
        if Confirm.ask("Take the quiz now?", default=True):
            run_quiz(engine, lesson_ref)
    except SessionExitRequested:
        console.print("[dim]Quiz abandoned.[/dim]")
    finally:
        engine.leave_lesson(lesson_ref)


# --- Review ---

def review_question(session) -> None:
    question = session.current
    console.print(Panel(
        question.prompt,
        title=f"Question {session.current_index + 1}/{len(session.questions)} ({session.progress}%)",
        border_style="cyan",
    ))
    if session.show_answer:
        # Restored after the answer was graded but before moving on
        console.print(f"Your answer: {session.user_answer}  Answer: [green]{question.correct_answer}[/green]")
        if question.explanation:
            console.print(f"[dim]{question.explanation}[/dim]")
        console.print()
        session.advance()
        return
    if question.options:
        answer = choose_option(question.options)
    else:
        answer = session_prompt(f"Your answer [dim](or '{SKIP}')[/dim]")
    if answer.strip().lower() == SKIP:
        session.skip()
        console.print("[dim]Skipped.[/dim]\n")
        return

    if session.submit_answer(answer):
        console.print("[green]Correct![/green]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: [green]{question.correct_answer}[/green]")
    if question.explanation:
        console.print(f"[dim]{question.explanation}[/dim]")
    console.print()
    session.advance()


def show_session_summary(session) -> None:
    stats = session.stats
    console.print(Panel(
        f"Correct: [green]{stats.correct}[/green]  |  Incorrect: [red]{stats.incorrect}[/red]  |  "
        f"Skipped: [yellow]{stats.skipped}[/yellow]",
        title="Review complete", border_style="green",
    ))


def run_review_session(session) -> None:
    while True:
        if session.state == SessionState.RESUME_PROMPT:
            session.resume(Confirm.ask("Resume your unfinished review session?", default=True))
        elif session.state == SessionState.FAILED:
            console.print("[red]Couldn't load review session.[/red]")
            if not Confirm.ask("Try again?", default=True):
                return
            session.retry()
        elif session.state == SessionState.COMPLETE:
            if session.stats.total == 0:
                console.print("[green]Nothing due for review. Nice work![/green]")
            else:
                show_session_summary(session)
            return
        else:
            review_question(session)


def cmd_review(engine: ReviewEngine):
    console.print("\n[bold]Review Session[/bold]\n")
    size = get_int_setting(engine.db_path, SESSION_SIZE_SETTING, DEFAULT_SESSION_SIZE)
    ceiling = get_int_setting(engine.db_path, LESSON_CEILING_SETTING, 1)
    session = engine.start_session(size=size, lesson_ceiling=ceiling)
    try:
        run_review_session(session)
    except SessionExitRequested:
        console.print("[dim]Progress saved. Pick up where you left off with 'review'.[/dim]")


def items_table(title: str, items) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Lesson", justify="right")
    table.add_column("Question")
    table.add_column("State")
    table.add_column("Due")
    table.add_column("Streak", justify="right")
    table.add_column("Lapses", justify="right")
    for item in items:
        table.add_row(
            str(item.id),
            str(item.lesson_ref),
            item.question_id,
            item.state.value,
            item.due_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            str(item.streak),
            str(item.lapses),
        )
    return table


def cmd_queue(engine: ReviewEngine):
    due = engine.due_items(limit=50)
    upcoming = engine.upcoming_items(limit=50)
    if not due and not upcoming:
        console.print("[green]Your review queue is empty.[/green]")
        return
    if due:
        console.print(items_table(f"Due now ({len(due)})", due))
    if upcoming:
        console.print(items_table(f"Upcoming ({len(upcoming)})", upcoming))
    counts = engine.store.state_counts()
    console.print("  " + "  |  ".join(
        f"{state.value.capitalize()}: [bold]{counts.get(state.value, 0)}[/bold]" for state in ReviewState
    ))


def cmd_suspend(engine: ReviewEngine):
    suspended = engine.suspended_items()
    if suspended:
        console.print(items_table("Suspended", suspended))
    item_id = IntPrompt.ask("Item ID")
    try:
        item = engine.store.get_item(item_id)
    except ReviewItemNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        return
    if item.state == ReviewState.SUSPENDED:
        engine.set_suspended(item, False)
        console.print(f"[green]Item {item_id} is back in learning.[/green]")
    else:
        engine.set_suspended(item, True)
        console.print(f"[yellow]Item {item_id} suspended.[/yellow]")


def cmd_import(engine: ReviewEngine):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    try:
        result = import_lesson_file(engine.db_path, file_path)
    except ImportFormatError as e:
        console.print(f"[red]{e}[/red]")
        return
    engine.catalogue.invalidate()
    console.print(
        f"[green]Imported {result['filename']}: {result['lessons']} lessons, "
        f"{result['vocabulary']} words, {result['questions']} questions[/green]"
    )


def cmd_settings(engine: ReviewEngine):
    size = get_int_setting(engine.db_path, SESSION_SIZE_SETTING, DEFAULT_SESSION_SIZE)
    ceiling = get_int_setting(engine.db_path, LESSON_CEILING_SETTING, 1)
    size = IntPrompt.ask("Review session size", default=size)
    ceiling = IntPrompt.ask("Highest lesson reached", default=ceiling)
    set_setting(engine.db_path, SESSION_SIZE_SETTING, str(max(1, size)))
    set_setting(engine.db_path, LESSON_CEILING_SETTING, str(max(1, ceiling)))
    console.print("[green]Settings saved.[/green]")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="latin-tutor", description="Church Latin tutor")
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="SQLite database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose, args.log_file)
    db_path = args.db
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    engine = ReviewEngine(db_path)
    commands = {
        "lesson": cmd_lesson,
        "review": cmd_review,
        "queue": cmd_queue,
        "suspend": cmd_suspend,
        "import": cmd_import,
        "settings": cmd_settings,
    }
    show_welcome()
    try:
        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
            try:
                if choice in ("quit", "exit", "q"):
                    console.print("[dim]Vale![/dim]")
                    break
                elif choice in commands:
                    commands[choice](engine)
                else:
                    console.print("[red]Unknown command. Try again.[/red]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except Exception as e:
                console.print(f"[red]Error: {e}[/red]")
    finally:
        engine.close()


if __name__ == "__main__":
    main()
