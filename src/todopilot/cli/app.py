"""Main CLI application using Typer."""
import asyncio

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..assistant import (
    ChatMessage,
    ChatRole,
    ChatSession,
    ReplyKind,
    check_connection,
    run_function_call_diagnostic,
)
from ..config import configure_logging, load_environment
from ..settings import AssistantSettings
from ..tasks import Priority, TaskFilter, TaskStatus, TaskUpdate
from .providers import get_settings_store, get_task_store

# Load environment variables
load_environment()

# Create Typer app
app = typer.Typer(
    name="todopilot",
    help="AI task assistant: chat, plan and summarize your to-do list",
    no_args_is_help=True,
    add_completion=True,
)
tasks_app = typer.Typer(help="Manage the task list", no_args_is_help=True)
config_app = typer.Typer(help="Show or change assistant settings", no_args_is_help=True)
app.add_typer(tasks_app, name="tasks")
app.add_typer(config_app, name="config")

# Console for rich output
console = Console()

_KIND_STYLES = {
    ReplyKind.CHAT: ("AI", "cyan"),
    ReplyKind.GENERATION: ("AI · 计划", "green"),
    ReplyKind.SUMMARY: ("AI · 总结", "magenta"),
    ReplyKind.ERROR: ("AI · 错误", "red"),
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug output to stderr"
    )
):
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else None)


def render_message(message: ChatMessage) -> None:
    """Print a transcript message."""
    if message.role == ChatRole.USER:
        return
    if message.role == ChatRole.SYSTEM:
        console.print(f"[dim]{message.content}[/dim]")
        return
    title, style = _KIND_STYLES.get(message.kind, _KIND_STYLES[ReplyKind.CHAT])
    console.print(Panel(message.content, title=title, border_style=style, title_align="left"))


@app.command()
def chat():
    """Interactive chat with the assistant."""
    async def _chat():
        task_store = get_task_store()
        settings_store = get_settings_store()

        try:
            await task_store.connect()
            await settings_store.connect()

            settings = await settings_store.get()
            mode = "远程模式" if settings.has_credential else "模拟模式"
            console.print(Panel(
                f"[bold]todopilot[/bold] ({mode})\n"
                "[dim]输入 /tasks 查看任务，/clear 清空对话，/exit 退出[/dim]",
                border_style="blue",
            ))

            session = ChatSession(task_store, settings_store, on_message=render_message)

            while True:
                try:
                    text = console.input("[bold blue]你>[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                command = text.strip().lower()
                if not command:
                    continue
                if command in ("/exit", "/quit"):
                    console.print("[dim]Goodbye![/dim]")
                    break
                if command == "/clear":
                    session.clear()
                    console.print("[dim]对话已清空[/dim]")
                    continue
                if command == "/tasks":
                    print_tasks(await task_store.list_tasks())
                    continue

                with console.status("[dim]思考中...[/dim]"):
                    await session.submit(text)

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await settings_store.disconnect()
            await task_store.disconnect()

    asyncio.run(_chat())


@app.command()
def ask(
    message: str = typer.Argument(..., help="Message to send to the assistant")
):
    """Send one message and print the reply."""
    async def _ask():
        task_store = get_task_store()
        settings_store = get_settings_store()

        try:
            await task_store.connect()
            await settings_store.connect()

            session = ChatSession(task_store, settings_store, on_message=render_message)
            result = await session.submit(message)

        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await settings_store.disconnect()
            await task_store.disconnect()

        if result.reply.kind == ReplyKind.ERROR:
            raise typer.Exit(code=1)

    asyncio.run(_ask())


@app.command()
def diagnose(
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the raw result as JSON"
    )
):
    """Test function calling against the configured endpoint.

    Creates the test tasks the model proposes.
    """
    async def _diagnose():
        task_store = get_task_store()
        settings_store = get_settings_store()

        try:
            await task_store.connect()
            await settings_store.connect()

            settings = await settings_store.get()
            with console.status("[dim]Testing function calling...[/dim]"):
                result = await run_function_call_diagnostic(settings, task_store)

        finally:
            await settings_store.disconnect()
            await task_store.disconnect()

        if as_json:
            console.print_json(data=result.to_dict())
        else:
            table = Table(title="Function Call Diagnostic", show_header=False)
            table.add_column("Field", style="cyan")
            table.add_column("Value")
            status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
            table.add_row("Result", status)
            table.add_row("Message", result.message)
            table.add_row("Dialect", result.api_format_detected)
            table.add_row("Function called", str(result.function_called))
            table.add_row("Function name", result.function_name or "-")
            table.add_row("Tasks created", str(result.tasks_created))
            console.print(table)

            if result.raw_response_sample:
                console.print(Panel(result.raw_response_sample, title="Raw response", border_style="dim"))
            for hint in result.recommendations:
                console.print(f"[yellow]![/yellow] {hint}")

        if not result.success:
            raise typer.Exit(code=1)

    asyncio.run(_diagnose())


@app.command(name="test-connection")
def test_connection():
    """Check that the endpoint accepts the configured API key."""
    async def _test():
        settings_store = get_settings_store()
        try:
            await settings_store.connect()
            settings = await settings_store.get()
            if not settings.has_credential:
                console.print("[yellow]![/yellow] API key: NOT SET (simulator mode)")
                raise typer.Exit(code=1)

            with console.status(f"[dim]Connecting to {settings.api_base_url}...[/dim]"):
                ok = await check_connection(settings)
        finally:
            await settings_store.disconnect()

        if ok:
            console.print(f"[green]+[/green] Connection: OK ({settings.model})")
        else:
            console.print("[red]x[/red] Connection: FAILED (run with --verbose for details)")
            raise typer.Exit(code=1)

    asyncio.run(_test())


def print_tasks(tasks) -> None:
    """Print tasks as a table."""
    if not tasks:
        console.print("[dim]No tasks.[/dim]")
        return

    table = Table(title=f"Tasks ({len(tasks)})")
    table.add_column("ID", style="dim", width=8)
    table.add_column("", width=3)
    table.add_column("Task")
    table.add_column("Status", style="cyan")
    table.add_column("Priority")

    for task in tasks:
        mark = "[green]✓[/green]" if task.completed else " "
        table.add_row(task.id[:8], mark, task.text, task.status.value, task.priority.value)
    console.print(table)


async def _resolve_task_id(store, prefix: str) -> str:
    """Expand an ID prefix as printed by `tasks list`."""
    matches = [task.id for task in await store.list_tasks() if task.id.startswith(prefix)]
    if len(matches) != 1:
        reason = "No task" if not matches else "Several tasks"
        console.print(f"[red]Error: {reason} with ID {prefix}[/red]")
        raise typer.Exit(code=1)
    return matches[0]


@tasks_app.command("list")
def tasks_list(
    status: TaskStatus | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only tasks with this status"
    ),
    search: str | None = typer.Option(
        None,
        "--search",
        "-q",
        help="Only tasks whose text contains this"
    )
):
    """List tasks."""
    async def _list():
        async with get_task_store() as store:
            tasks = await store.list_tasks(TaskFilter(status=status, search=search))
        print_tasks(tasks)

    asyncio.run(_list())


@tasks_app.command("add")
def tasks_add(
    text: str = typer.Argument(..., help="Task text"),
    priority: Priority = typer.Option(
        Priority.LOW,
        "--priority",
        "-p",
        help="Task priority"
    )
):
    """Add a task."""
    async def _add():
        async with get_task_store() as store:
            try:
                task = await store.create_task(text, priority)
            except ValueError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)
        console.print(f"[green]Added[/green] {task.id[:8]} {task.text}")

    asyncio.run(_add())


@tasks_app.command("done")
def tasks_done(
    task_id: str = typer.Argument(..., help="Task ID or prefix")
):
    """Mark a task as completed."""
    async def _done():
        async with get_task_store() as store:
            full_id = await _resolve_task_id(store, task_id)
            task = await store.update_task(full_id, TaskUpdate(completed=True))
        console.print(f"[green]✓[/green] {task.text}")

    asyncio.run(_done())


@tasks_app.command("delete")
def tasks_delete(
    task_id: str = typer.Argument(..., help="Task ID or prefix")
):
    """Delete a task."""
    async def _delete():
        async with get_task_store() as store:
            full_id = await _resolve_task_id(store, task_id)
            await store.delete_task(full_id)
        console.print("[green]Deleted.[/green]")

    asyncio.run(_delete())


@tasks_app.command("clear-completed")
def tasks_clear_completed():
    """Delete all completed tasks."""
    async def _clear():
        async with get_task_store() as store:
            count = await store.delete_completed()
        console.print(f"[green]Deleted {count} completed tasks.[/green]")

    asyncio.run(_clear())


@tasks_app.command("stats")
def tasks_stats():
    """Show task counts per status."""
    async def _stats():
        async with get_task_store() as store:
            stats = await store.statistics()

        table = Table(title="Task Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        for name, value in stats.model_dump().items():
            table.add_row(name.replace("_", " ").title(), str(value))
        console.print(table)

    asyncio.run(_stats())


@config_app.command("show")
def config_show():
    """Show the effective settings (environment overrides applied)."""
    async def _show():
        async with get_settings_store() as store:
            settings = await store.get()

        table = Table(title="Settings")
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in settings.masked().items():
            table.add_row(key, "" if value is None else str(value))
        console.print(table)

    asyncio.run(_show())


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name, e.g. api_key or function_calling_mode"),
    value: str = typer.Argument(..., help="New value (empty string clears optional settings)")
):
    """Change a stored setting."""
    async def _set():
        if key not in AssistantSettings.model_fields:
            console.print(f"[red]Error: Unknown setting {key}[/red]")
            console.print(f"[dim]Known settings: {', '.join(AssistantSettings.model_fields)}[/dim]")
            raise typer.Exit(code=1)

        # Stored settings only, so environment overrides are not persisted
        async with get_settings_store(overlay_env=False) as store:
            current = await store.get()
            try:
                updated = AssistantSettings.model_validate({**current.model_dump(), key: value})
            except ValidationError as e:
                console.print(f"[red]Error: Invalid value for {key}: {e.errors()[0]['msg']}[/red]")
                raise typer.Exit(code=1)
            await store.save(updated)

        console.print(f"[green]Saved[/green] {key}")

    asyncio.run(_set())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
