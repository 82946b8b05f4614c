#!/usr/bin/env python3
"""
PDCA Planner - Command Line Interface
CLI for extracting goals from chat text, managing stored goals and tasks, and
talking to the goal-planning coach
"""

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from typing import Any, Dict, List, Optional
import json

from pdca.core import Database, Config
from pdca.core.dates import format_local_date
from pdca.agents import GoalAgent, GoalChatAgent, TaskAgent, AgentResponse
from pdca.parsing import GoalExtractor
from pdca.llm import LLMConfigError, create_llm_from_config

# Initialize CLI app and console
app = typer.Typer(help="PDCA Planner - Goal-planning chat and goal tracking")
goals_app = typer.Typer(help="Stored goal management")
tasks_app = typer.Typer(help="Task management")
app.add_typer(goals_app, name="goals")
app.add_typer(tasks_app, name="tasks")

console = Console()
config = Config()

# Lazy-loaded database (created on first use)
_db: Optional[Database] = None


def get_db() -> Database:
    """
    Get or initialize the Database instance.

    Commands that never touch storage (plain extract) don't create the
    database file.
    """
    global _db
    if _db is None:
        _db = Database(config.get_database_path(), create=True)
        _db.init_schema()
    return _db


def format_agent_response(response: AgentResponse) -> None:
    """
    Display the status line and suggestions of an AgentResponse.

    Args:
        response: The AgentResponse to display
    """
    if response.success:
        console.print(f"[green]✓[/green] {response.message}")
    else:
        console.print(f"[red]✗[/red] {response.message}")

    if response.suggestions:
        console.print()
        console.print("[dim]Suggestions:[/dim]")
        for suggestion in response.suggestions:
            console.print(f"  [dim]•[/dim] {suggestion}")


def _format_metric(metric: Any) -> str:
    if not isinstance(metric, dict):
        return str(metric)
    text = metric.get("description", "")
    if metric.get("target") is not None:
        text += f" (target: {metric['target']:g}{metric.get('unit') or ''})"
    return text


def render_goal(goal: Dict[str, Any]) -> None:
    """
    Render a goal as a two-column table.

    Accepts both the extracted form (startDate/endDate) and the stored
    form (start_date/end_date).
    """
    start = goal.get("startDate") or goal.get("start_date")
    end = goal.get("endDate") or goal.get("end_date")

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")

    if goal.get("id") is not None:
        table.add_row("ID", str(goal["id"]))
    table.add_row("Title", goal.get("title", ""))
    table.add_row("Description", goal.get("description") or "-")
    table.add_row("Level", goal.get("level", ""))
    table.add_row("Status", goal.get("status", ""))
    table.add_row("Dates", f"{format_local_date(start)} → {format_local_date(end)}")
    table.add_row("Priority", str(goal.get("priority", "")))

    metrics = goal.get("metrics") or []
    if metrics:
        table.add_row("Metrics", "\n".join(f"• {_format_metric(m)}" for m in metrics))
    if goal.get("progress") is not None:
        table.add_row("Progress", f"{goal['progress']:.0%}")
    if goal.get("is_overdue"):
        table.add_row("", "[red]Overdue[/red]")

    console.print(table)


@app.command()
def extract(
    user_input: str = typer.Argument(..., help="The user's message"),
    reply: str = typer.Argument("", help="The assistant's reply"),
    as_json: bool = typer.Option(False, "--json", help="Print the goal as JSON"),
    save: bool = typer.Option(False, "--save", "-s", help="Store the extracted goal"),
):
    """
    Extract a structured goal from one chat turn

    Examples:
      planner extract "目标：每天跑步30分钟"
      planner extract "我想提升英语" "目标：雅思7分 截止时间：2025-12-31"
      planner extract "My goal is to read 12 books this year" --json
    """
    if save:
        response = GoalAgent(get_db(), config).process("extract_goal", {
            "text": user_input,
            "reply": reply,
            "save": True,
            "user_id": config.get("default_user_id"),
        })
        goal = response.data.get("extracted_goal") if response.data else None
    else:
        response = None
        structured = GoalExtractor().extract(user_input, reply)
        goal = structured.to_dict() if structured else None

    if goal is None:
        if as_json:
            console.print_json(json.dumps(None))
        else:
            console.print("[yellow]No goal found[/yellow]")
        return

    if as_json:
        console.print_json(json.dumps(goal, ensure_ascii=False))
    else:
        console.print()
        render_goal(goal)
        console.print()

    if response is not None:
        format_agent_response(response)
        if not response.success:
            raise typer.Exit(1)


@goals_app.command("list")
def goals_list(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status (ACTIVE, COMPLETED, ...)"),
    level: Optional[str] = typer.Option(None, "--level", "-l", help="Filter by level (YEARLY, MONTHLY, ...)"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum goals to show"),
):
    """
    List stored goals

    Examples:
      planner goals list
      planner goals list --status ACTIVE --level MONTHLY
    """
    context: Dict[str, Any] = {"limit": limit}
    if status:
        context["status"] = status
    if level:
        context["level"] = level

    response = GoalAgent(get_db(), config).process("list_goals", context)
    if not response.success:
        format_agent_response(response)
        raise typer.Exit(1)

    goals = response.data.get("goals", [])
    if not goals:
        console.print("[yellow]No goals found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Goal", min_width=30)
    table.add_column("Level", width=10)
    table.add_column("Priority", justify="center", width=8)
    table.add_column("End", width=12)
    table.add_column("Status", width=10)

    for goal in goals:
        end = format_local_date(goal.get("end_date")) if goal.get("end_date") else "-"
        status_style = "red" if goal.get("is_overdue") else ""
        table.add_row(
            str(goal["id"]),
            goal["title"],
            goal["level"],
            str(goal["priority"]),
            f"[{status_style}]{end}[/{status_style}]" if status_style else end,
            goal["status"],
        )

    console.print(f"\n[bold]Goals ({len(goals)}):[/bold]\n")
    console.print(table)
    console.print()


@goals_app.command("show")
def goals_show(goal_id: int = typer.Argument(..., help="Goal ID")):
    """Show one goal with its sub-goals"""
    response = GoalAgent(get_db(), config).process("get_goal", {"goal_id": goal_id})
    if not response.success:
        format_agent_response(response)
        raise typer.Exit(1)

    goal = response.data["goal"]
    console.print()
    render_goal(goal)

    children = goal.get("children") or []
    if children:
        console.print("\n[bold]Sub-goals:[/bold]")
        for child in children:
            console.print(f"  [dim]#{child['id']}[/dim] {child['title']} ({child['status']})")
    console.print()


@goals_app.command("delete")
def goals_delete(goal_id: int = typer.Argument(..., help="Goal ID to delete")):
    """
    Delete a stored goal

    Example:
      planner goals delete 5
    """
    response = GoalAgent(get_db(), config).process("delete_goal", {"goal_id": goal_id})
    format_agent_response(response)
    if not response.success:
        raise typer.Exit(1)


@tasks_app.command("list")
def tasks_list(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status (TODO, IN_PROGRESS, ...)"),
    goal: Optional[int] = typer.Option(None, "--goal", "-g", help="Only tasks for this goal"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum tasks to show"),
):
    """
    List tasks

    Examples:
      planner tasks list
      planner tasks list --status TODO --goal 3
    """
    context: Dict[str, Any] = {"limit": limit}
    if status:
        context["status"] = status
    if goal is not None:
        context["goal_id"] = goal

    response = TaskAgent(get_db(), config).process("list_tasks", context)
    if not response.success:
        format_agent_response(response)
        raise typer.Exit(1)

    tasks = response.data.get("tasks", [])
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Task", min_width=30)
    table.add_column("Priority", width=8)
    table.add_column("Due", width=14)
    table.add_column("Status", width=12)
    table.add_column("Goal", width=20)

    for task in tasks:
        due = format_local_date(task["due_date"]) if task.get("due_date") else "-"
        if task.get("is_overdue"):
            due = f"[red]{due}[/red]"
        table.add_row(
            str(task["id"]),
            task["title"],
            task["priority"],
            due,
            task["status"],
            (task.get("goal") or {}).get("title") or "-",
        )

    console.print(f"\n[bold]Tasks ({len(tasks)}):[/bold]\n")
    console.print(table)
    console.print()


@tasks_app.command("add")
def tasks_add(
    title: str = typer.Argument(..., help="Task title"),
    goal: Optional[int] = typer.Option(None, "--goal", "-g", help="Goal the task works towards"),
    priority: Optional[str] = typer.Option(None, "--priority", "-p", help="LOW, MEDIUM, HIGH or URGENT"),
    due: Optional[str] = typer.Option(None, "--due", "-d", help="Due date (YYYY-MM-DD)"),
):
    """
    Add a task

    Example:
      planner tasks add "每天背50个单词" --goal 3 --priority HIGH --due 2025-06-30
    """
    context: Dict[str, Any] = {"title": title, "user_id": config.get("default_user_id")}
    if goal is not None:
        context["goal_id"] = goal
    if priority:
        context["priority"] = priority
    if due:
        context["due_date"] = due

    response = TaskAgent(get_db(), config).process("create_task", context)
    format_agent_response(response)
    if not response.success:
        raise typer.Exit(1)


@tasks_app.command("status")
def tasks_status(
    task_id: int = typer.Argument(..., help="Task ID"),
    status: str = typer.Argument(..., help="TODO, IN_PROGRESS, COMPLETED or CANCELLED"),
):
    """
    Move a task to another status

    Example:
      planner tasks status 7 COMPLETED
    """
    response = TaskAgent(get_db(), config).process("update_task_status", {
        "task_id": task_id,
        "status": status,
    })
    format_agent_response(response)
    if not response.success:
        raise typer.Exit(1)


@tasks_app.command("delete")
def tasks_delete(task_id: int = typer.Argument(..., help="Task ID to delete")):
    """Delete a task"""
    response = TaskAgent(get_db(), config).process("delete_task", {"task_id": task_id})
    format_agent_response(response)
    if not response.success:
        raise typer.Exit(1)


def _chat_turn(agent: GoalChatAgent, messages: List[Dict[str, str]]) -> bool:
    """Run one goal-chat turn, print the reply and any proposed goal."""
    response = agent.process("goal_chat", {
        "messages": messages,
        "user_id": config.get("default_user_id"),
    })
    if not response.success:
        console.print(f"[red]✗[/red] {response.message}")
        return False

    reply = response.data["reply"]
    messages.append({"role": "assistant", "content": reply})
    console.print(Panel(reply, title="Coach", border_style="cyan"))

    goal = response.data.get("extracted_goal")
    if goal:
        console.print("[bold]Proposed goal:[/bold]")
        render_goal(goal)
    return True


@app.command()
def chat(
    message: Optional[str] = typer.Argument(None, help="Send one message and exit"),
):
    """
    Talk through a goal with the goal-planning coach

    With MESSAGE, runs a single turn. Without it, starts an interactive
    session; type 'exit', 'quit' or 'bye' to end it.

    Examples:
      planner chat "我想在三个月内减重5公斤"
      planner chat
    """
    try:
        llm = create_llm_from_config(config)
    except LLMConfigError as e:
        console.print(f"[red]LLM not configured: {e}[/red]")
        raise typer.Exit(1)

    agent = GoalChatAgent(get_db(), config, llm=llm)
    messages: List[Dict[str, str]] = []

    if message is not None:
        messages.append({"role": "user", "content": message})
        if not _chat_turn(agent, messages):
            raise typer.Exit(1)
        return

    console.print(Panel(
        "[bold cyan]PDCA Goal Coach[/bold cyan]\n\n"
        "Describe what you want to achieve; the coach helps make it specific.\n"
        "Type [bold]'exit'[/bold], [bold]'quit'[/bold], or [bold]'bye'[/bold] to end the session.",
        border_style="cyan"
    ))
    console.print()

    exit_commands = {"exit", "quit", "bye", "q"}

    while True:
        try:
            user_input = console.input("[bold green]>[/bold green] ").strip()

            if not user_input:
                continue

            if user_input.lower() in exit_commands:
                console.print("[dim]Goodbye![/dim]")
                break

            messages.append({"role": "user", "content": user_input})
            console.print()
            if not _chat_turn(agent, messages):
                messages.pop()
            console.print()

        except KeyboardInterrupt:
            console.print("\n[dim]Use 'exit' to quit[/dim]")
            continue
        except EOFError:
            console.print("\n[dim]Goodbye![/dim]")
            break


if __name__ == "__main__":
    app()
