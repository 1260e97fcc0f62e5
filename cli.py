# cli.py
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.produce_client import ProduceClient

console = Console()
c = ProduceClient(base_url=os.environ.get("PRODUCE_API_URL", "http://127.0.0.1:8000"))

CATEGORIES = ["fruits", "vegetables"]
UNITS = ["g", "kg"]

status_message = "Ready"

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], category: str):
    if not products:
        console.print(f"[italic yellow]No {category} found[/italic yellow]")
        return

    table = Table(
        title=f"🥕 {category.capitalize()}",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Quantity", justify="right", width=14)
    table.add_column("Unit", width=6)

    for p in products:
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("name", "N/A"),
            f"{p.get('quantity', 0):.3f}".rstrip("0").rstrip("."),
            p.get("unit", "g")
        )
    console.print(table)


def show_health(health: Dict[str, Any]):
    services = health.get("services", {})
    table = Table(box=box.ROUNDED, header_style="bold blue")
    table.add_column("Service", style="bold")
    table.add_column("Status")
    table.add_column("Detail", style="dim")
    for name, info in services.items():
        if isinstance(info, dict):
            ok = info.get("status") == "ok"
            table.add_row(name, "[green]ok[/green]" if ok else "[red]error[/red]", info.get("error", ""))
        else:
            table.add_row(name, f"[green]{info}[/green]", "")
    style = "green" if health.get("status") == "healthy" else "red"
    console.print(Panel(
        table,
        title=f"[{style}]{health.get('status', 'unknown')}[/{style}] ({health.get('environment', '?')})",
        border_style=style,
    ))


def show_import_result(result: Dict[str, Any]):
    data = result.get("data") or {}
    errors = result.get("errors") or []
    if result.get("success"):
        console.print(Panel.fit(f"[green]{result.get('message')}[/green]", title="✅ Import"))
        return
    lines = [f"[yellow]{result.get('message', 'Import failed')}[/yellow]"]
    if data:
        lines.append(f"Imported: {data.get('imported_count', 0)} products")
    lines.extend(f"  - {e}" for e in errors)
    console.print(Panel.fit("\n".join(lines), title="⚠️ Import"))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns None and records the error in status_message on failure.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
        return None


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_category() -> str:
    while True:
        category = prompt_with_autocomplete(
            "Category", completer=WordCompleter(CATEGORIES, ignore_case=True), default="fruits"
        ).strip().lower()
        if category in CATEGORIES:
            return category
        console.print("[red]Category must be fruits or vegetables.[/red]")


def ask_unit(default: str = "g") -> str:
    return Prompt.ask("Unit", choices=UNITS, default=default)


def ask_float(message: str, default: float = 1.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🍎 Produce Store",
        "[bold blue]Fruit & Vegetable Inventory[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Direct import (no server needed)
# ---------------------------
def run_import(path: str) -> int:
    from produce.cache import make_backend
    from produce.config import get_settings, setup_logging
    from produce.database import Database
    from produce.errors import ImportValidationError, StoreError
    from produce.importer import ImportService
    from produce.services import build_services

    settings = get_settings()
    setup_logging(settings.log_level)
    db = Database(settings.database_path)
    backend = make_backend(settings.cache_backend, settings.redis_url, settings.socket_timeout)

    console.rule("[bold]Importing Products")
    console.print(f"Reading file: {path}")
    try:
        db.init_schema()
        result = ImportService(build_services(db, backend, settings.cache_ttl)).import_file(path)
    except (ImportValidationError, StoreError) as e:
        console.print(f"[bold red]Import failed: {e}[/bold red]")
        console.print("Example: python cli.py import request.json")
        return 1

    if not result.errors:
        console.print(f"[bold green]Successfully imported {result.imported_count} products![/bold green]")
        return 0
    console.print("[yellow]Import completed with errors:[/yellow]")
    console.print(f"Imported: {result.imported_count} products")
    console.print(f"Errors: {len(result.errors)}")
    for error in result.errors:
        console.print(f"  - {error}")
    return 0


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message

    console.clear()
    console.print(create_header())

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "5", "📥 Import JSON file"),
            ("2", "🔍 Search products", "6", "👀 Preview JSON file"),
            ("3", "➕ Add product", "7", "🩺 Health"),
            ("4", "➖ Remove product", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 8)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            category = ask_category()
            unit = ask_unit()
            products = try_api(c.list_products, category, unit=unit, success_msg=f"{category.capitalize()} loaded")
            if products is not None:
                show_products(products, category)

        elif choice == "2":
            category = ask_category()
            term = prompt_with_autocomplete("Enter search term")
            unit = ask_unit()
            products = try_api(c.list_products, category, term, unit, success_msg=f"Search for '{term}' completed")
            if products is not None:
                show_products(products, category)

        elif choice == "3":
            category = ask_category()
            name = prompt_with_autocomplete("Enter product name")
            quantity = ask_float("Quantity", default=1.0)
            unit = ask_unit(default="kg")
            resp = try_api(c.add_product, category, name, quantity, unit)
            if resp and resp.get("success"):
                status_message = resp.get("message", "Added")
                show_products([resp["data"]], category)
            elif resp:
                detail = "; ".join(resp.get("errors", [])) or resp.get("message", "")
                status_message = f"Error: {detail}"

        elif choice == "4":
            category = ask_category()
            pid = IntPrompt.ask("Product ID")
            if Confirm.ask(f"Remove {category} #{pid}?"):
                removed = try_api(c.remove_product, category, pid)
                if removed is True:
                    status_message = f"Removed {category} #{pid}"
                elif removed is False:
                    status_message = f"Error: {category} #{pid} not found"

        elif choice == "5":
            path = prompt_with_autocomplete("Path to JSON file", default="request.json")
            resp = try_api(c.import_products, path)
            if resp:
                show_import_result(resp)

        elif choice == "6":
            path = prompt_with_autocomplete("Path to JSON file", default="request.json")
            resp = try_api(c.preview_import, path, success_msg="File processed")
            if resp:
                for category in CATEGORIES:
                    show_products(resp.get(category, []), category)

        elif choice == "7":
            resp = try_api(c.health)
            if resp:
                show_health(resp)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "import":
        if len(sys.argv) != 3:
            console.print("[red]usage: python cli.py import <file.json>[/red]")
            sys.exit(2)
        sys.exit(run_import(sys.argv[2]))
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
