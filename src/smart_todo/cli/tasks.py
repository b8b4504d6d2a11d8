"""Command-line interface for smart-todo."""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import Config, ConfigModel, get_config
from ..controller import TaskController
from ..parser import SmartTaskParser
from ..services.export import ExportManager
from ..services.ordering import is_overdue, relative_time_label
from ..services.reminders import (
    ConsoleNotificationDelivery,
    DesktopNotificationDelivery,
    InProcessScheduler,
    ReminderManager,
    ReminderWorker,
)
from ..services.suggestions import get_suggestions, suggest_categories
from ..state import TaskTab
from ..storage import SQLiteTaskStore
from ..task import Task, Priority
from ..utils.datetime import now_local, parse_datetime_input

logger = logging.getLogger(__name__)

console = Console()

PRIORITY_STYLES = {
    Priority.HIGH: "bold red",
    Priority.MEDIUM: "yellow",
    Priority.LOW: "dim",
}

VIEW_TABS = {
    "all": TaskTab.ALL,
    "active": TaskTab.ACTIVE,
    "completed": TaskTab.COMPLETED,
}


def get_store(config: ConfigModel) -> SQLiteTaskStore:
    """Get initialized storage instance."""
    return SQLiteTaskStore(config.get_database_path())


def get_delivery(config: ConfigModel):
    if config.desktop_notifications:
        desktop = DesktopNotificationDelivery()
        if desktop.is_available():
            return desktop
        logger.info("Desktop notifications unavailable, using the console")
    return ConsoleNotificationDelivery(console)


def get_controller(config: ConfigModel) -> TaskController:
    """Wire the store, parser and reminder scheduler together."""
    store = get_store(config)
    worker = ReminderWorker(store, get_delivery(config))
    reminders = ReminderManager(InProcessScheduler(worker.run))
    parser = SmartTaskParser(default_time=config.default_due_time)
    return TaskController(store, reminders, parser=parser)


def format_task_for_display(task: Task, now=None) -> str:
    """Format a task as a single rich-markup line."""
    now = now or now_local()
    status_icon = "✅" if task.completed else "⏳"
    style = PRIORITY_STYLES.get(task.priority, "white")

    text_parts = [f"[dim]{task.id}[/dim]", f"{status_icon} [{style}]{task.title}[/{style}]"]

    if task.due_date:
        label = relative_time_label(task.due_date, now)
        color = "red" if is_overdue(task, now) else "blue"
        text_parts.append(f"[{color}]{label}[/{color}]")

    if task.has_reminder:
        text_parts.append("⏰")

    if task.category:
        text_parts.append(f"[cyan]#{task.category}[/cyan]")

    return " ".join(text_parts)


def print_message(controller: TaskController):
    message = controller.state.message
    if not message:
        return
    if message.startswith("Error"):
        console.print(f"[red]❌ {message}[/red]")
    else:
        console.print(f"[green]✅ {message}[/green]")
    controller.clear_message()


def require_task(controller: TaskController, task_id: int) -> Task:
    task = controller.store.get_by_id(task_id)
    if task is None:
        console.print(f"[red]Error: Task {task_id} not found[/red]")
        sys.exit(1)
    return task


def parse_due_option(due: Optional[str]):
    if due is None:
        return None
    parsed = parse_datetime_input(due)
    if parsed is None:
        console.print(f"[red]Error: Could not understand due date {due!r}[/red]")
        sys.exit(1)
    return parsed


@click.group()
@click.option("--config", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config, verbose):
    """smart-todo - to-do lists from plain sentences."""
    ctx.ensure_object(dict)

    try:
        if config:
            loaded = Config.reload(Path(config))
        else:
            loaded = get_config()
    except Exception as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, str(loaded.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = loaded


@main.command()
@click.argument("input_text", required=True)
@click.option("--description", "-d", default="", help="Longer note for the task")
@click.option("--category", "-c", help="Category label")
@click.option("--due", help="Explicit due date, overrides the sentence (e.g. 2024-05-01 14:00)")
@click.option("--dry-run", is_flag=True, help="Parse without saving to see what would be created")
@click.pass_context
def add(ctx, input_text, description, category, due, dry_run):
    """Add a task written as a sentence.

    Examples:
      smart-todo add "Call John tomorrow 9am"
      smart-todo add "Submit report by Friday urgent"
      smart-todo add "Remind me to pay rent next monday 10am"
    """
    controller = get_controller(ctx.obj["config"])

    controller.show_add_task_dialog()
    controller.parse_quick_add(input_text)
    controller.update_task_description(description)
    controller.update_selected_category(category)
    if due is not None:
        controller.update_selected_due_date(parse_due_option(due))

    state = controller.state
    if not state.task_title.strip():
        controller.save_task()
        print_message(controller)
        sys.exit(1)

    preview = Task(
        title=state.task_title,
        priority=state.selected_priority,
        due_date=state.selected_due_date,
        has_reminder=state.has_reminder and state.selected_due_date is not None,
        category=state.selected_category,
    )
    console.print("[bold green]📋 Task Preview:[/bold green]")
    console.print(f"  {format_task_for_display(preview)}")

    if dry_run:
        console.print("[yellow]🔍 Dry run - not saved[/yellow]")
        return

    task_id = controller.save_task()
    print_message(controller)
    if task_id is None:
        sys.exit(1)
    console.print(f"[dim]Task id: {task_id}[/dim]")


@main.command()
@click.argument("input_text", required=True)
@click.pass_context
def parse(ctx, input_text):
    """Show how a sentence would be parsed."""
    parsed = SmartTaskParser(default_time=ctx.obj["config"].default_due_time).parse(input_text)

    table = Table(title="Parsed task", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Title", parsed.title)
    table.add_row("Due", relative_time_label(parsed.due_date) if parsed.due_date else "-")
    table.add_row("Priority", parsed.priority.display_name)
    table.add_row("Reminder", "yes" if parsed.has_reminder else "no")
    console.print(table)


@main.command(name="list")
@click.option("--view", type=click.Choice(sorted(VIEW_TABS)), default="all", help="Which tasks to show")
@click.option("--search", "-s", help="Only tasks whose title or note contains this text")
@click.option("--category", "-c", help="Only tasks in this category")
@click.pass_context
def list_tasks(ctx, view, search, category):
    """List tasks in priority order."""
    controller = get_controller(ctx.obj["config"])
    controller.set_selected_tab(VIEW_TABS[view])
    if search:
        controller.update_search_query(search)
    if category:
        controller.set_category_filter(category)
        matches = suggest_categories(category, controller.store.categories())
        if matches:
            console.print(f"[blue]💡 Did you mean #{matches[0]} instead of #{category}?[/blue]")

    tasks = controller.visible_tasks()
    if not tasks:
        console.print("[dim]No tasks found.[/dim]")
        return

    now = now_local()
    table = Table(title=f"{VIEW_TABS[view].value} tasks")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("", width=2)
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Due")
    table.add_column("Category", style="cyan")

    for task in tasks:
        due_label = ""
        if task.due_date:
            due_label = relative_time_label(task.due_date, now)
            if is_overdue(task, now):
                due_label = f"[red]{due_label}[/red]"
            if task.has_reminder:
                due_label += " ⏰"
        style = PRIORITY_STYLES.get(task.priority, "white")
        table.add_row(
            str(task.id),
            "✅" if task.completed else "⏳",
            task.title,
            f"[{style}]{task.priority.display_name}[/{style}]",
            due_label,
            task.category or "",
        )

    console.print(table)


@main.command()
@click.argument("task_id", type=int)
@click.pass_context
def done(ctx, task_id):
    """Toggle a task between completed and active."""
    controller = get_controller(ctx.obj["config"])
    task = require_task(controller, task_id)

    updated = controller.toggle_task_completion(task)
    print_message(controller)
    if updated is None:
        sys.exit(1)
    state = "completed" if updated.completed else "reopened"
    console.print(f"[green]✅ Task {task_id} {state}[/green]")


@main.command()
@click.argument("task_id", type=int)
@click.option("--title", "-t", help="New title")
@click.option("--description", "-d", help="New note")
@click.option("--priority", "-p", type=click.Choice(["low", "medium", "high"]), help="New priority")
@click.option("--due", help="New due date")
@click.option("--no-due", is_flag=True, help="Remove the due date (and its reminder)")
@click.option("--reminder/--no-reminder", default=None, help="Turn the reminder on or off")
@click.option("--category", "-c", help="New category")
@click.pass_context
def edit(ctx, task_id, title, description, priority, due, no_due, reminder, category):
    """Edit fields of an existing task."""
    controller = get_controller(ctx.obj["config"])
    task = require_task(controller, task_id)

    controller.show_edit_task_dialog(task)
    if title is not None:
        controller.update_task_title(title)
    if description is not None:
        controller.update_task_description(description)
    if priority is not None:
        controller.update_selected_priority(Priority.from_value(priority))
    if no_due:
        controller.update_selected_due_date(None)
    elif due is not None:
        controller.update_selected_due_date(parse_due_option(due))
    if reminder is not None:
        controller.update_has_reminder(reminder)
    if category is not None:
        controller.update_selected_category(category or None)

    if controller.save_task() is None:
        print_message(controller)
        sys.exit(1)
    print_message(controller)


@main.command()
@click.argument("task_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx, task_id, yes):
    """Delete a task."""
    controller = get_controller(ctx.obj["config"])
    task = require_task(controller, task_id)

    if not yes and not click.confirm(f"Delete task {task_id} ({task.title})?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    deleted = controller.delete_task(task)
    print_message(controller)
    if not deleted:
        sys.exit(1)


@main.command()
@click.argument("partial_input", required=False, default="")
@click.pass_context
def suggest(ctx, partial_input):
    """Show task templates matching what you typed."""
    suggestions = get_suggestions(partial_input, limit=ctx.obj["config"].suggestion_limit)
    if not suggestions:
        console.print("[dim]No suggestions.[/dim]")
        return
    console.print("[bold blue]💡 Suggestions:[/bold blue]")
    for suggestion in suggestions:
        console.print(f"  [blue]{suggestion}[/blue]")


@main.command(name="export")
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.pass_context
def export_tasks(ctx, output_path):
    """Export all tasks to a JSON file."""
    controller = get_controller(ctx.obj["config"])
    tasks = controller.store.all_tasks()
    ExportManager().export_to_file(tasks, output_path)
    console.print(f"[green]✅ Exported {len(tasks)} tasks to {output_path}[/green]")


@main.command(name="import")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_tasks(ctx, input_path):
    """Import tasks from a JSON file."""
    controller = get_controller(ctx.obj["config"])
    with open(input_path, "r", encoding="utf-8") as f:
        content = f.read()

    controller.import_tasks(content)
    message = controller.state.message or ""
    if message.startswith("Error"):
        print_message(controller)
        sys.exit(1)
    print_message(controller)


@main.command()
@click.pass_context
def stats(ctx):
    """Show task counts."""
    controller = get_controller(ctx.obj["config"])
    counts = controller.counts()
    due_today = controller.store.tasks_due_today()

    lines = [
        f"Active:    [bold]{counts.active}[/bold]",
        f"Completed: [bold]{counts.completed}[/bold]",
        f"Overdue:   [bold red]{counts.overdue}[/bold red]",
        f"Due today: [bold blue]{len(due_today)}[/bold blue]",
    ]
    console.print(Panel("\n".join(lines), title="📊 Tasks"))

    controller.check_overdue()
    if controller.state.message:
        console.print(f"[yellow]⚠️  {controller.state.message}[/yellow]")
        controller.clear_message()


@main.command()
@click.option("--interval", default=30, show_default=True, help="Seconds between refreshes")
@click.pass_context
def watch(ctx, interval):
    """Stay running and deliver reminders as they come due."""
    config = ctx.obj["config"]
    controller = get_controller(config)
    if not config.notifications_enabled:
        console.print("[yellow]Notifications are disabled in the configuration[/yellow]")
        return

    scheduled = controller.reminders.restore_reminders(controller.store)
    console.print(f"[green]⏰ Watching {scheduled} reminders (Ctrl+C to stop)[/green]")
    try:
        while True:
            time.sleep(interval)
            controller.reminders.restore_reminders(controller.store)
    except KeyboardInterrupt:
        controller.reminders.cancel_all_reminders()
        console.print("[dim]Stopped[/dim]")


if __name__ == "__main__":
    main()
