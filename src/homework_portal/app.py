"""Interactive CLI application."""
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from homework_portal.assignments import get_assignment, list_assignments, list_children
from homework_portal.cache import AssignmentsCache
from homework_portal.config import get_settings
from homework_portal.dashboard import get_accuracy_color, get_accuracy_label, get_child_stats
from homework_portal.db import init_db
from homework_portal.errors import AlreadyTerminal, PortalError
from homework_portal.hints import purchase_hint
from homework_portal.importer import import_package_file
from homework_portal.logs import configure_logging
from homework_portal.models import SubmissionResult
from homework_portal.scratch import ScratchStore
from homework_portal.seed import seed_all
from homework_portal.submission import submit_answer

console = Console()

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """The learner asked to leave the current assignment."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]Homework Portal[/bold]\n[dim]Answer, retry, earn coins[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("assignments", "List your assignments"),
        ("work", "Work on an assignment"),
        ("wallet", "Coins, streak and progress"),
        ("import", "Import a problem package"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_result(result: SubmissionResult) -> None:
    if result.is_correct:
        console.print(f"[green]Correct![/green] +{result.coins_earned} coins "
                      f"(balance {result.total_coins}, streak {result.streak})")
    elif result.can_retry:
        console.print(f"[red]Not quite.[/red] Attempt {result.attempt_number} of {result.max_attempts}. "
                      f"Next try is worth [yellow]{result.potential_reward}[/yellow] coins.")
        if result.can_buy_hint:
            console.print(f"[dim]Type 'hint' to buy a hint for {result.hint_cost} coins.[/dim]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: [green]{result.correct_answer}[/green]")
    if result.explanation:
        console.print(f"[dim]{result.explanation}[/dim]")


def run_question(db_path: str, child_id: str, assignment_id: str, question: dict,
                 cache=None, scratch_store=None) -> SubmissionResult | None:
    """Ask one question until it is finished. Returns the last result."""
    console.print(Panel(question["question_text"], title=f"Question {question['number']}", border_style="cyan"))
    for option in question.get("options") or []:
        console.print(f"  [cyan]{option}[/cyan]")
    result = None
    while True:
        answer = session_prompt("\nYour answer")
        if answer.strip().lower() == "hint":
            try:
                bought = purchase_hint(db_path, child_id, assignment_id, question["id"], cache=cache)
            except PortalError as exc:
                console.print(f"[yellow]{exc.message}[/yellow]")
                continue
            console.print(Panel(bought.hint, title=f"Hint (-{bought.coins_spent} coins)", border_style="yellow"))
            continue
        try:
            result = submit_answer(db_path, child_id, assignment_id, question["id"], answer,
                                   cache=cache, scratch_store=scratch_store)
        except AlreadyTerminal:
            console.print("[dim]Already done.[/dim]")
            return result
        show_result(result)
        if result.question_complete:
            return result


def run_assignment_session(db_path: str, child_id: str, assignment_id: str,
                           cache=None, scratch_store=None) -> bool:
    """Work through the unfinished questions. Returns whether the assignment is complete."""
    detail = get_assignment(db_path, assignment_id, child_id=child_id)
    if detail.get("story_text"):
        console.print(Panel(detail["story_text"], title="Story"))
    open_questions = [q for q in detail["questions"] if q["state"] in ("unanswered", "attempted")]
    if not open_questions:
        console.print("[green]Everything here is already done![/green]")
        return detail["status"] == "completed"
    complete = False
    try:
        for question in open_questions:
            result = run_question(db_path, child_id, assignment_id, question, cache, scratch_store)
            if result and result.assignment_complete:
                complete = True
    except SessionExitRequested:
        console.print("[dim]Leaving assignment. Progress is saved.[/dim]")
    if complete:
        console.print("[bold green]Assignment complete![/bold green]")
    return complete


def cmd_assignments(db_path: str, child_id: str, cache=None) -> list[dict]:
    assignments = list_assignments(db_path, child_id=child_id, cache=cache)
    table = Table(title="Assignments")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for i, a in enumerate(assignments, 1):
        status_color = "green" if a["status"] == "completed" else "yellow"
        table.add_row(
            str(i), a["title"], a["assignment_type"],
            f"{a['correct_count']}/{a['total_count']}",
            f"[{status_color}]{a['status']}[/{status_color}]",
        )
    console.print(table)
    return assignments


def cmd_work(db_path: str, child_id: str, cache=None, scratch_store=None):
    assignments = cmd_assignments(db_path, child_id, cache)
    if not assignments:
        console.print("[yellow]No assignments yet.[/yellow]")
        return
    choice = IntPrompt.ask("Pick an assignment", choices=[str(i) for i in range(1, len(assignments) + 1)])
    run_assignment_session(db_path, child_id, assignments[choice - 1]["id"], cache, scratch_store)


def cmd_wallet(db_path: str, child_id: str):
    stats = get_child_stats(db_path, child_id)
    color = get_accuracy_color(stats["accuracy"])
    console.print(Panel(
        f"Coins: [bold yellow]{stats['balance']}[/bold yellow]  (earned {stats['total_earned']})\n"
        f"Streak: [bold]{stats['streak']}[/bold]\n"
        f"Assignments: {stats['assignments_completed']}/{stats['assignments_total']} completed\n"
        f"Accuracy: [{color}]{stats['accuracy']}% {get_accuracy_label(stats['accuracy'])}[/{color}]",
        title="Wallet", border_style="yellow",
    ))


def cmd_import(db_path: str):
    file_path = Prompt.ask("Package file path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_package_file(db_path, None, file_path)
    console.print(f"[green]Imported {result['name']} ({result['problem_count']} problems)[/green]")


def main():
    settings = get_settings()
    configure_logging(settings)
    db_path = settings.database_path
    init_db(db_path)
    seed_all(db_path)
    cache = AssignmentsCache.from_settings(settings)
    scratch_store = ScratchStore.from_settings(settings)

    children = list_children(db_path)
    child = children[0]
    if len(children) > 1:
        for i, c in enumerate(children, 1):
            console.print(f"  [cyan]{i}[/cyan]) {c['name']}")
        choice = IntPrompt.ask("Who is studying?", choices=[str(i) for i in range(1, len(children) + 1)])
        child = children[choice - 1]

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="work").strip().lower()
        try:
            if choice == "assignments":
                cmd_assignments(db_path, child["id"], cache)
            elif choice == "work":
                cmd_work(db_path, child["id"], cache, scratch_store)
            elif choice == "wallet":
                cmd_wallet(db_path, child["id"])
            elif choice == "import":
                cmd_import(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you next time![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except PortalError as e:
            console.print(f"[red]{e.message}[/red]")
        except Exception as e:
            logger.exception("Command failed")
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
