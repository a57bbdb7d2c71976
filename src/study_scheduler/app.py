"""Interactive CLI application."""
import logging
from datetime import date, timedelta
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from study_scheduler.backup import export_all_data, import_all_data, migrate
from study_scheduler.config import Settings, load_settings
from study_scheduler.dates import Clock, format_date, is_past, is_today, parse_date, week_start
from study_scheduler.distribution import (
    schedule_book, schedule_video, update_book_progress, update_video_progress,
)
from study_scheduler.importer import read_transcript
from study_scheduler.models import BookMaterial, VideoMaterial, completion_key
from study_scheduler.planner import calculate_progress, generate_daily_plan, generate_weekly_plan
from study_scheduler.progress import get_progress_stats, get_remaining_days, is_learning_completed
from study_scheduler.storage import Backend, local_backend, open_backend, sqlite_backend
from study_scheduler.validation import (
    preview_book_schedule, preview_video_schedule, validate_book_form, validate_video_form,
)
from study_scheduler.video_parser import estimate_completion_days, format_duration, parse_video_text

console = Console()
log = logging.getLogger(__name__)

CANCEL_WORDS = {"q", "menu"}
END_OF_LISTING = "END"


class FormCancelled(Exception):
    """Raised when the user types 'q' or 'menu' at a form prompt."""


def form_prompt(prompt: str, **kwargs) -> str:
    if "choices" in kwargs:
        kwargs["choices"] = list(kwargs["choices"]) + ["q"]
    value = Prompt.ask(prompt, **kwargs)
    if value is not None and value.strip().lower() in CANCEL_WORDS:
        raise FormCancelled()
    return value


def form_int_prompt(prompt: str, default: int = None) -> int:
    while True:
        kwargs = {"default": str(default)} if default is not None else {}
        value = form_prompt(prompt, **kwargs)
        try:
            return int(value)
        except (TypeError, ValueError):
            console.print("[red]Please enter a whole number.[/red]")


def form_date_prompt(prompt: str, default: date) -> date:
    while True:
        value = form_prompt(f"{prompt} (YYYY-MM-DD)", default=default.isoformat())
        parsed = parse_date(value)
        if parsed:
            return parsed
        console.print("[red]Please enter a date as YYYY-MM-DD.[/red]")


def report(result, success_message: str) -> bool:
    if result.success:
        console.print(f"[green]{success_message}[/green]")
        return True
    console.print(f"[red]{result.error.message}[/red]")
    return False


def show_welcome():
    console.print(Panel(
        "[bold]Study Scheduler[/bold]\n[dim]Plan your books and video courses day by day[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("week", "Weekly calendar"),
        ("today", "Today's tasks"),
        ("book", "Register a book"),
        ("video", "Register a video course"),
        ("done", "Check off a task"),
        ("undo", "Uncheck a task"),
        ("advance", "Record how far you've got in a material"),
        ("list", "Materials and progress"),
        ("delete", "Remove a material"),
        ("reminders", "Reminder settings"),
        ("export", "Back up all data to a file"),
        ("import", "Restore data from a backup"),
        ("migrate", "Copy data to the other storage backend"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def task_line(task, checked: bool) -> str:
    mark = "[green]✓[/green]" if checked else "[dim]○[/dim]"
    title = f"[strike]{task.material_title}[/strike]" if checked else task.material_title
    return f"{mark} {title}\n  [dim]{task.description}[/dim]"


def build_week_table(plan, completed_keys: set, clock: Clock = date.today) -> Table:
    table = Table(title=f"Week of {format_date(plan.week_start)} to {format_date(plan.week_end)}", show_lines=True)
    for day in plan.days:
        style = "bold yellow" if is_today(day.date, clock) else ("dim" if is_past(day.date, clock) else "cyan")
        table.add_column(f"{day.day_of_week[:3]}\n{day.date[5:]}", header_style=style, vertical="top")
    cells = []
    for day in plan.days:
        lines = [task_line(t, completion_key(t.material_id, day.date) in completed_keys) for t in day.tasks]
        cells.append("\n".join(lines) if lines else "[dim]-[/dim]")
    table.add_row(*cells)
    return table


def cmd_week(backend: Backend, clock: Clock = date.today):
    offset = 0
    while True:
        start = week_start(clock=clock) + timedelta(weeks=offset)
        plan = generate_weekly_plan(backend.materials.get_all(), start, clock=clock)
        console.print(build_week_table(plan, backend.completed_tasks.get_all(), clock))
        choice = Prompt.ask("[dim]prev / next / back[/dim]", choices=["prev", "next", "back"], default="back")
        if choice == "back":
            return
        offset += 1 if choice == "next" else -1


def cmd_today(backend: Backend, clock: Clock = date.today):
    materials = backend.materials.get_all()
    completed = backend.completed_tasks.get_all()
    today = clock()
    plan = generate_daily_plan(materials, today)
    if not plan.tasks:
        console.print("[green]Nothing planned for today.[/green]")
        return
    stats = get_progress_stats(materials, completed, clock)
    console.print(Panel(
        f"{stats['today_completed']}/{stats['today_tasks']} done  |  this week {stats['week_progress']}%",
        title=f"Today, {plan.day_of_week} {plan.date}",
    ))
    for task in plan.tasks:
        console.print(task_line(task, completion_key(task.material_id, today) in completed))
        if task.sections:
            for title in task.sections:
                console.print(f"    [dim]- {title}[/dim]")


def cmd_book(backend: Backend, clock: Clock = date.today):
    console.print("\n[bold]Register a book[/bold] [dim](q to cancel)[/dim]")
    title = form_prompt("Title")
    start_page = form_int_prompt("Start page", default=1)
    end_page = form_int_prompt("End page")
    start_date = form_date_prompt("Start date", clock())
    end_date = form_date_prompt("End date", clock() + timedelta(days=13))
    description = form_prompt("Description", default="")

    validation = validate_book_form(title, start_page, end_page, start_date, end_date)
    if not validation.is_valid:
        for error in validation.errors:
            console.print(f"[red]{error.message}[/red]")
        return None
    console.print(f"[cyan]That's {preview_book_schedule(start_page, end_page, start_date, end_date)} pages a day.[/cyan]")
    if not Confirm.ask("Save?", default=True):
        return None

    book = schedule_book(
        title.strip(), end_page - start_page + 1, start_date, end_date,
        description=description or None, start_page=start_page,
    )
    report(backend.materials.add(book), "Book registered!")
    return book


def read_pasted_listing() -> str:
    console.print(f"[dim]Paste the lecture list, then a line with just {END_OF_LISTING}:[/dim]")
    lines = []
    while True:
        line = console.input()
        if line.strip() == END_OF_LISTING:
            return "\n".join(lines)
        lines.append(line)


def cmd_video(backend: Backend, clock: Clock = date.today):
    console.print("\n[bold]Register a video course[/bold] [dim](q to cancel)[/dim]")
    title = form_prompt("Title")
    source = form_prompt("Lecture list from", choices=["paste", "file"], default="paste")
    if source == "file":
        path = form_prompt("File path")
        if not Path(path).exists():
            console.print(f"[red]File not found: {path}[/red]")
            return None
        video_text = read_transcript(path)
    else:
        video_text = read_pasted_listing()
    parsed = parse_video_text(video_text)
    start_date = form_date_prompt("Start date", clock())
    # four weeks, counting the start day
    end_date = form_date_prompt("End date", clock() + timedelta(days=27))
    description = form_prompt("Description", default="")

    validation = validate_video_form(title, video_text, parsed, start_date, end_date)
    if not validation.is_valid:
        for error in validation.errors:
            console.print(f"[red]{error.message}[/red]")
        return None

    preview = preview_video_schedule(parsed, start_date, end_date)
    console.print(
        f"[cyan]{parsed.total_count} lectures, {format_duration(parsed.total_duration)} in total "
        f"(about {estimate_completion_days(parsed.total_duration)} days at 3 hours a day).[/cyan]\n"
        f"[cyan]Over {preview['total_days']} days: {preview['sections_per_day']} lectures, "
        f"{preview['time_per_day']} a day.[/cyan]"
    )
    if not Confirm.ask("Save?", default=True):
        return None

    video = schedule_video(title.strip(), parsed.sections, start_date, end_date, description=description or None)
    report(backend.materials.add(video), "Video course registered!")
    return video


def select_material(backend: Backend, prompt: str = "Material"):
    materials = backend.materials.get_all()
    if not materials:
        console.print("[yellow]No materials registered yet.[/yellow]")
        return None
    for i, m in enumerate(materials, 1):
        console.print(f"  [cyan]{i}[/cyan]) {m.title} [dim]({m.type})[/dim]")
    index = form_prompt(prompt, choices=[str(i) for i in range(1, len(materials) + 1)])
    return materials[int(index) - 1]


def cmd_toggle(backend: Backend, completed: bool, clock: Clock = date.today):
    day = form_date_prompt("Date", clock())
    plan = generate_daily_plan(backend.materials.get_all(), day)
    if not plan.tasks:
        console.print(f"[yellow]No tasks on {plan.date}.[/yellow]")
        return
    for i, task in enumerate(plan.tasks, 1):
        console.print(f"  [cyan]{i}[/cyan]) {task.material_title} [dim]{task.description}[/dim]")
    index = form_prompt("Task", choices=[str(i) for i in range(1, len(plan.tasks) + 1)])
    task = plan.tasks[int(index) - 1]
    # only the completion-key set changes; progress counters are recorded with 'advance'
    if completed:
        report(backend.completed_tasks.mark_completed(task.material_id, day), "Marked as done.")
    else:
        report(backend.completed_tasks.mark_incomplete(task.material_id, day), "Marked as not done.")


def cmd_advance(backend: Backend):
    material = select_material(backend)
    if material is None:
        return
    if isinstance(material, BookMaterial):
        page = form_int_prompt(f"Last page read (of {material.end_page})", default=material.current_page)
        updated = update_book_progress(material, max(0, page))
        report(backend.materials.update(material.id, current_page=updated.current_page), "Progress saved.")
    elif isinstance(material, VideoMaterial):
        count = form_int_prompt(
            f"Lectures finished (of {len(material.sections)})", default=material.current_progress,
        )
        updated = update_video_progress(material, count)
        report(
            backend.materials.update(material.id, sections=updated.sections, current_progress=updated.current_progress),
            "Progress saved.",
        )
    else:
        console.print("[yellow]Custom materials have no progress counter.[/yellow]")


def progress_bar(percent: int, width: int = 20) -> str:
    filled = int(percent / 100 * width)
    color = "green" if percent >= 100 else "cyan"
    return f"[{color}]{'█' * filled}{'░' * (width - filled)}[/{color}]"


def cmd_list(backend: Backend, clock: Clock = date.today):
    materials = backend.materials.get_all()
    if not materials:
        console.print("[yellow]No materials registered yet. Use 'book' or 'video' to add one.[/yellow]")
        return
    table = Table(title="Materials")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Window")
    table.add_column("Daily")
    table.add_column("Progress")
    table.add_column("Left", justify="right")
    for m in materials:
        percent = calculate_progress(m)
        if isinstance(m, BookMaterial):
            daily = f"{m.pages_per_day} pages"
        elif isinstance(m, VideoMaterial):
            daily = f"{m.sections_per_day} lectures"
        else:
            daily = "-"
        left = "[green]done[/green]" if is_learning_completed(m) else f"{get_remaining_days(m, clock)} days"
        table.add_row(
            m.title, m.type, f"{format_date(m.start_date)} → {format_date(m.end_date)}",
            daily, f"{progress_bar(percent)} {percent}%", left,
        )
    console.print(table)


def cmd_delete(backend: Backend):
    material = select_material(backend, "Delete which")
    if material and Confirm.ask(f"Really delete '{material.title}'?", default=False):
        report(backend.materials.delete(material.id), "Deleted.")


def cmd_reminders(backend: Backend):
    setting = backend.settings.get_reminder_settings()
    days = ", ".join(("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")[d] for d in setting.days_of_week)
    status = "on" if setting.enabled else "off"
    console.print(f"Reminders are [bold]{status}[/bold] at {setting.time} on {days or 'no days'}.")
    if not Confirm.ask("Change?", default=False):
        return
    setting.enabled = Confirm.ask("Enable reminders?", default=setting.enabled)
    setting.time = form_prompt("Time (HH:MM)", default=setting.time)
    raw_days = form_prompt("Days (0=Sun ... 6=Sat, comma separated)", default=",".join(map(str, setting.days_of_week)))
    setting.days_of_week = sorted({int(d) for d in raw_days.split(",") if d.strip().isdigit() and int(d) <= 6})
    report(backend.settings.save_reminder_settings(setting), "Reminder settings saved.")


def cmd_export(backend: Backend, clock: Clock = date.today):
    path = form_prompt("Export to", default=f"study-scheduler-backup-{format_date(clock())}.json")
    Path(path).write_text(export_all_data(backend), encoding="utf-8")
    console.print(f"[green]Exported to {path}[/green]")


def cmd_import(backend: Backend):
    file_path = form_prompt("Backup file")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if not Confirm.ask("This replaces all current data. Continue?", default=False):
        return
    report(import_all_data(backend, Path(file_path).read_text(encoding="utf-8")), "Data restored.")


def cmd_migrate(backend: Backend, settings: Settings):
    target = sqlite_backend(settings.db_path) if backend.kind == "local" else local_backend(settings.local_store_path)
    if not Confirm.ask(f"Copy all data from {backend.kind} to {target.kind}?", default=True):
        return
    result = migrate(backend, target)
    color = "green" if result["success"] else "red"
    console.print(f"[{color}]{result['message']}[/{color}]")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=settings.debug)],
    )


def main():
    settings = load_settings()
    configure_logging(settings)
    backend = open_backend(settings)
    log.debug("Using %s backend in %s", backend.kind, settings.data_dir)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        try:
            if choice == "week":
                cmd_week(backend)
            elif choice == "today":
                cmd_today(backend)
            elif choice == "book":
                cmd_book(backend)
            elif choice == "video":
                cmd_video(backend)
            elif choice == "done":
                cmd_toggle(backend, completed=True)
            elif choice == "undo":
                cmd_toggle(backend, completed=False)
            elif choice == "advance":
                cmd_advance(backend)
            elif choice == "list":
                cmd_list(backend)
            elif choice == "delete":
                cmd_delete(backend)
            elif choice == "reminders":
                cmd_reminders(backend)
            elif choice == "export":
                cmd_export(backend)
            elif choice == "import":
                cmd_import(backend)
            elif choice == "migrate":
                cmd_migrate(backend, settings)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy studying![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except FormCancelled:
            console.print("[dim]Cancelled.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            log.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
