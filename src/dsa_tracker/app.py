"""Interactive CLI application."""
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from dsa_tracker.activity import heatmap
from dsa_tracker.config import load_config
from dsa_tracker.dashboard import get_score_color, get_subject_mastery, get_summary
from dsa_tracker.logging_config import init_logging
from dsa_tracker.models import DIFFICULTIES
from dsa_tracker.review import get_weak_subjects
from dsa_tracker.revision import get_priority_revisions, get_upcoming
from dsa_tracker.service import TrackerService

console = Console()

SEVERITY_STYLES = {"success": "green", "info": "cyan", "warning": "yellow", "error": "red"}
HEAT_BLOCKS = ("·", "░", "▒", "▓", "█")


class ConsoleHooks:
    """Render presentation callbacks on the terminal."""

    def __init__(self):
        self.has_pending = False

    def on_toast(self, message: str, severity: str = "info") -> None:
        style = SEVERITY_STYLES.get(severity, "cyan")
        console.print(f"[{style}]{message}[/{style}]")

    def on_confetti(self) -> None:
        console.print("[bold magenta]✨ 🎊 ✨ 🎉 ✨ 🎊 ✨[/bold magenta]")

    def on_notification_dot_update(self, has_pending: bool) -> None:
        self.has_pending = has_pending


def show_welcome():
    console.print(Panel(
        "[bold]DSA Tracker[/bold]\n[dim]Spaced revision, streaks and badges[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(hooks: ConsoleHooks):
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("add", "Log a solved question"),
        ("revise", "Revise a due question"),
        ("due", "Revisions due + upcoming"),
        ("list", "All questions"),
        ("dashboard", "Level, streak + progress"),
        ("badges", "Badge collection"),
        ("activity", "Recent activity"),
        ("calendar", "Day notes and tasks"),
        ("syllabus", "Syllabus topics"),
        ("export", "Write a backup file"),
        ("import", "Restore from a backup file"),
        ("sync", "Pull and merge remote questions"),
        ("reset", "Delete all data"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        marker = " [red]●[/red]" if cmd == "due" and hooks.has_pending else ""
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}{marker}")


def _question_table(title: str, questions: list, scores: dict | None = None) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Question", style="cyan")
    table.add_column("Subject")
    table.add_column("Difficulty")
    table.add_column("Status")
    table.add_column("Next", justify="right")
    if scores is not None:
        table.add_column("Priority", justify="right")
    for i, q in enumerate(questions, 1):
        row = [str(i), q.name, q.subject, q.difficulty, q.status, q.next_revision_date or "-"]
        if scores is not None:
            row.append(str(scores[q.id]))
        table.add_row(*row)
    return table


def cmd_add(service: TrackerService):
    console.print("\n[bold]Log a Question[/bold]")
    name = Prompt.ask("Name").strip()
    if not name:
        console.print("[red]A question needs a name.[/red]")
        return
    subject = Prompt.ask("Subject", default="Arrays").strip()
    difficulty = Prompt.ask("Difficulty", choices=list(DIFFICULTIES), default="Medium")
    time_taken = IntPrompt.ask("Minutes taken", default=0)
    platform = Prompt.ask("Platform", default="").strip()
    link = Prompt.ask("Link", default="").strip()
    tags = [t.strip() for t in Prompt.ask("Tags (comma separated)", default="").split(",") if t.strip()]
    notes = Prompt.ask("Notes", default="")
    question, _ = service.log_question({
        "name": name,
        "subject": subject,
        "difficulty": difficulty,
        "time_taken": time_taken or None,
        "platform": platform,
        "link": link,
        "tags": tags,
        "notes": notes,
        "date_solved": service.store.today().isoformat(),
    })
    console.print(f"[dim]First revision on {question.next_revision_date}[/dim]")


def cmd_revise(service: TrackerService):
    store = service.store
    ranked = get_priority_revisions(store.get_questions(), store.today(), limit=20)
    if not ranked:
        console.print("[green]Nothing due. Enjoy the break![/green]")
        return
    questions = [q for q, _ in ranked]
    console.print(_question_table("Due for Revision", questions, {q.id: s for q, s in ranked}))
    pick = IntPrompt.ask("Revise which #", choices=[str(i) for i in range(1, len(questions) + 1)])
    question = questions[pick - 1]
    console.print(Panel(
        f"[bold]{question.name}[/bold]\n{question.subject} · {question.difficulty}"
        + (f"\n[dim]{question.link}[/dim]" if question.link else "")
        + (f"\n{question.notes}" if question.notes else ""),
        title=f"Cycle {question.revision_cycle + 1}", border_style="cyan",
    ))
    quality = IntPrompt.ask(
        "How well did you recall it (1=forgot, 3=hard, 4=good, 5=easy)", choices=["1", "2", "3", "4", "5"],
    )
    time_taken = IntPrompt.ask("Minutes taken", default=0)
    notes = Prompt.ask("Notes", default="")
    result = service.log_revision(question.id, quality, time_taken, notes)
    if result and not result.mastered:
        console.print(f"[dim]Next revision on {result.question.next_revision_date}[/dim]")


def cmd_due(service: TrackerService):
    store = service.store
    today = store.today()
    questions = store.get_questions()
    ranked = get_priority_revisions(questions, today, limit=50)
    if ranked:
        console.print(_question_table("Due Today", [q for q, _ in ranked], {q.id: s for q, s in ranked}))
    else:
        console.print("[green]No revisions due today.[/green]")
    upcoming = get_upcoming(questions, today)
    if upcoming:
        console.print(_question_table("Next 7 Days", upcoming))


def cmd_list(service: TrackerService):
    questions = service.store.get_questions()
    if not questions:
        console.print("[yellow]No questions logged yet. Use 'add' to log one.[/yellow]")
        return
    console.print(_question_table(f"Questions ({len(questions)})", questions))


def cmd_dashboard(service: TrackerService):
    store = service.store
    summary = get_summary(store)
    level = service.engine.get_level_info()

    console.print(Panel(
        f"[bold]Level {level.level}[/bold]  ·  {summary['total_xp']} XP  ·  "
        f"🔥 {summary['current_streak']} day streak (best {summary['longest_streak']})",
        title="DSA Tracker Dashboard", border_style="blue",
    ))

    bar_filled = int(level.progress * 20)
    bar = f"[magenta]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/magenta]"
    console.print(f"\n  Level progress: {bar} {level.current_level_xp}/{level.xp_for_next_level} XP")
    color = get_score_color(summary["productivity"])
    console.print(f"  Productivity today: [{color}]{summary['productivity']}%[/{color}]")

    week = "  ".join(
        f"[{'green' if d['active'] else 'dim'}]{d['day_name']}{'*' if d['is_today'] else ''}[/]"
        for d in service.engine.get_streak_week()
    )
    console.print(f"  This week: {week}\n")

    console.print(f"  Questions: [bold]{summary['total_questions']}[/bold]  |  "
                  f"Mastered: [bold]{summary['mastered']}[/bold]  |  "
                  f"Due: [bold]{summary['due_today']}[/bold] ([red]{summary['overdue']} overdue[/red])  |  "
                  f"Revisions: [bold]{summary['total_revisions']}[/bold]  |  "
                  f"Badges: [bold]{summary['badges']}[/bold]")

    mastery = get_subject_mastery(store.get_questions())
    if mastery:
        table = Table(title="Subject Mastery")
        table.add_column("Subject", style="cyan")
        table.add_column("Questions", justify="right")
        table.add_column("Mastered", justify="right")
        for row in mastery:
            table.add_row(row["subject"], str(row["total"]), f"{row['percent']}%")
        console.print(table)

    weak = [s for s in get_weak_subjects(store.get_questions()) if s["strength_score"] < 50]
    if weak:
        console.print(f"\n  [yellow]Focus on {weak[0]['name']}: weakest subject at "
                      f"{weak[0]['strength_score']}% strength[/yellow]")

    cells = heatmap(store.get_questions(), store.get_daily_log(), store.today(), days=28)
    console.print("\n  Last 4 weeks: " + "".join(HEAT_BLOCKS[c["level"]] for c in cells))


def cmd_badges(service: TrackerService):
    entries = service.engine.get_all_badges()
    table = Table(title=f"Badges ({sum(e['unlocked'] for e in entries)}/{len(entries)})")
    table.add_column("")
    table.add_column("Badge")
    table.add_column("How to earn")
    for entry in entries:
        badge = entry["badge"]
        if entry["unlocked"]:
            table.add_row(badge.icon, f"[green]{badge.name}[/green]", badge.description)
        else:
            table.add_row("🔒", f"[dim]{badge.name}[/dim]", f"[dim]{badge.description}[/dim]")
    console.print(table)


def cmd_activity(service: TrackerService):
    log = service.store.get_activity_log()
    if not log:
        console.print("[yellow]No activity yet.[/yellow]")
        return
    table = Table(title="Recent Activity")
    table.add_column("When", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("What")
    for entry in log[:20]:
        table.add_row(entry.timestamp[:16].replace("T", " "), entry.type, entry.text)
    console.print(table)


def cmd_calendar(service: TrackerService):
    store = service.store
    raw = Prompt.ask("Date (YYYY-MM-DD)", default=store.today().isoformat()).strip()
    try:
        day = date.fromisoformat(raw)
    except ValueError:
        console.print(f"[red]Not a date: {raw}[/red]")
        return
    entry = store.get_calendar_entry(day)
    if entry:
        console.print(Panel(
            ("[red]★ Important[/red]\n" if entry.important else "")
            + (entry.notes or "[dim]No notes[/dim]")
            + "".join(f"\n  • {task}" for task in entry.tasks),
            title=day.isoformat(), border_style="cyan",
        ))
    if not Confirm.ask("Edit this day?", default=entry is None):
        return
    important = Confirm.ask("Mark as important?", default=bool(entry and entry.important))
    notes = Prompt.ask("Notes", default=entry.notes if entry else "")
    tasks_raw = Prompt.ask("Tasks (semicolon separated)", default="; ".join(entry.tasks) if entry else "")
    tasks = [t.strip() for t in tasks_raw.split(";") if t.strip()]
    saved = store.save_calendar_entry(day, important=important, notes=notes, tasks=tasks)
    if saved is None:
        console.print("[dim]Day cleared.[/dim]")
    else:
        console.print(f"[green]Saved {day.isoformat()}.[/green]")


def cmd_syllabus(service: TrackerService):
    store = service.store
    syllabi = store.get_syllabi()
    if not syllabi:
        console.print("[yellow]No syllabi yet.[/yellow]")
    table = Table(title="Syllabi")
    table.add_column("#", justify="right")
    table.add_column("Stream")
    table.add_column("Name", style="cyan")
    table.add_column("Progress", justify="right")
    for i, s in enumerate(syllabi, 1):
        done = sum(1 for t in s.topics if t.completed)
        table.add_row(str(i), s.stream, s.name, f"{done}/{len(s.topics)} ({s.progress * 100:.0f}%)")
    console.print(table)

    action = Prompt.ask("Action", choices=["open", "new", "delete", "back"], default="open" if syllabi else "new")
    if action == "new":
        name = Prompt.ask("Name").strip()
        if name:
            stream = Prompt.ask("Stream", default="").strip()
            store.add_syllabus(name, stream=stream)
            console.print(f"[green]Created {name}.[/green]")
        return
    if action == "back" or not syllabi:
        return
    pick = IntPrompt.ask("Which #", choices=[str(i) for i in range(1, len(syllabi) + 1)])
    syllabus = syllabi[pick - 1]
    if action == "delete":
        if Confirm.ask(f"Delete {syllabus.name}?", default=False):
            store.delete_syllabus(syllabus.id)
        return

    while True:
        for i, topic in enumerate(syllabus.topics, 1):
            check = "[green]✔[/green]" if topic.completed else " "
            console.print(f"  [cyan]{i:>2}[/cyan] [{check}] {topic.name}")
        action = Prompt.ask("Topic action", choices=["toggle", "add", "remove", "back"], default="back")
        if action == "back":
            return
        if action == "add":
            name = Prompt.ask("Topic").strip()
            updated = store.add_topic(syllabus.id, name) if name else None
        else:
            if not syllabus.topics:
                continue
            index = IntPrompt.ask("Topic #", choices=[str(i) for i in range(1, len(syllabus.topics) + 1)]) - 1
            if action == "toggle":
                updated = store.toggle_topic(syllabus.id, index)
            else:
                updated = store.delete_topic(syllabus.id, index)
        if updated is not None:
            syllabus = updated


def cmd_export(service: TrackerService):
    default = f"dsa-tracker-backup-{service.store.today().isoformat()}.json"
    path = Path(Prompt.ask("Export to", default=default))
    path.write_text(service.store.export_snapshot(), encoding="utf-8")
    console.print(f"[green]Exported to {path}[/green]")


def cmd_import(service: TrackerService):
    file_path = Prompt.ask("File path")
    path = Path(file_path)
    if not path.exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if not Confirm.ask("Importing replaces your current data. Continue?", default=False):
        return
    if service.store.import_snapshot(path.read_text(encoding="utf-8")):
        console.print("[green]Data imported successfully![/green]")
    else:
        console.print("[red]Import failed: the file is not a valid tracker backup.[/red]")


def cmd_sync(service: TrackerService):
    if not service.sync.enabled:
        console.print("[yellow]No remote store configured. Set DSA_TRACKER_REMOTE_URL to enable sync.[/yellow]")
        return
    if service.store.sync_from_remote():
        console.print("[green]Merged remote questions.[/green]")
    else:
        console.print("[dim]Nothing to merge; local questions pushed to remote.[/dim]")


def cmd_reset(service: TrackerService):
    if Confirm.ask("[red]Delete ALL questions, stats and logs?[/red]", default=False):
        service.reset()
        console.print("[green]All data cleared.[/green]")


COMMANDS = {
    "add": cmd_add,
    "revise": cmd_revise,
    "due": cmd_due,
    "list": cmd_list,
    "dashboard": cmd_dashboard,
    "badges": cmd_badges,
    "activity": cmd_activity,
    "calendar": cmd_calendar,
    "syllabus": cmd_syllabus,
    "export": cmd_export,
    "import": cmd_import,
    "sync": cmd_sync,
    "reset": cmd_reset,
}


def main():
    config = load_config()
    init_logging(config.log_level, config.log_format)
    hooks = ConsoleHooks()
    service = TrackerService(config, hooks)
    service.startup()

    show_welcome()

    try:
        while True:
            show_menu(hooks)
            choice = Prompt.ask("\n[bold]>[/bold]", default="due").strip().lower()
            try:
                if choice in ("quit", "exit", "q"):
                    console.print("[dim]Keep the streak alive![/dim]")
                    break
                elif choice in COMMANDS:
                    COMMANDS[choice](service)
                else:
                    console.print("[red]Unknown command. Try again.[/red]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except Exception as e:
                console.print(f"[red]Error: {e}[/red]")
    finally:
        service.shutdown()


if __name__ == "__main__":
    main()
