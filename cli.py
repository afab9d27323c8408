# cli.py
import logging
import sys
from datetime import datetime
from typing import Callable, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.logging import RichHandler
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.catalog import CatalogClient
from sdk.composer import CategoryComposer
from sdk.config import settings
from sdk.errors import EditorStateError

console = Console()

status_message = "Ready"

# Custom prompt style for prompt_toolkit
custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


def notify(message: str, ok: bool) -> None:
    global status_message
    status_message = message if ok else f"Error: {message}"
    console.print(show_status(message, ok))


def confirm(question: str) -> bool:
    return Confirm.ask(f"[red]{question}[/red]")


def busy(fn: Callable, *args, **kwargs):
    """Run fn with a spinner; the composer reports its own outcome."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    ) as progress:
        progress.add_task(description="Processing...", total=None)
        return fn(*args, **kwargs)


# ---------------------------
# Display helpers
# ---------------------------
def show_categories(composer: CategoryComposer):
    snap = composer.snapshot
    if snap is None or not snap.categories:
        console.print("[italic yellow]No categories yet[/italic yellow]")
        return

    for category in snap.categories:
        marker = "▼" if category.id in composer.expanded else "▶"
        summary = (
            f"{len(category.subcategories)} subcategories • "
            f"{snap.total_products(category)} products"
        )
        title = f"{marker} [bold]{category.name}[/bold] [dim](#{category.id}, {category.slug})[/dim]"
        if category.id not in composer.expanded:
            console.print(Panel.fit(summary, title=title, border_style="blue"))
            continue

        table = Table(box=box.ROUNDED, header_style="bold cyan", show_lines=True)
        table.add_column("ID", style="dim", width=6)
        table.add_column("Subcategory", style="bold", width=22)
        table.add_column("Description", width=30)
        table.add_column("Products", width=36)
        table.add_column("Image", width=10)
        for sub in category.subcategories:
            products = snap.subcategory_products(sub.id)
            table.add_row(
                str(sub.id),
                sub.name,
                sub.description or "-",
                ", ".join(p.name for p in products) or "[dim]none[/dim]",
                "yes" if sub.image else "-",
            )
        if not category.subcategories:
            table.add_row("-", "[italic]No subcategories yet[/italic]", "", "", "")

        filters = snap.filters_for_category(category)
        if filters:
            labels = []
            for cf in filters:
                if cf.subcategory is not None:
                    target = snap.subcategory_name(cf.subcategory) or "Subcategory"
                else:
                    target = "whole category"
                state = "" if cf.is_active else " [red](off)[/red]"
                labels.append(f"#{cf.id} {snap.filter_type_name(cf.filter_type)} → {target}{state}")
            filter_line = "Filters: " + "; ".join(labels)
        else:
            filter_line = "[dim]No filters assigned[/dim]"

        console.print(Panel(table, title=title, subtitle=summary, border_style="blue"))
        console.print(f"  {filter_line}")


def show_filter_types(composer: CategoryComposer):
    snap = composer.snapshot
    if snap is None or not snap.filter_types:
        console.print("[italic yellow]No filter types found[/italic yellow]")
        return
    table = Table(title="🔎 Filter types", box=box.ROUNDED, header_style="bold magenta", show_lines=True)
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold", width=20)
    table.add_column("Slug", width=18)
    table.add_column("Display", width=14)
    table.add_column("Options", width=30)
    for ft in snap.filter_types:
        table.add_row(str(ft.id), ft.name, ft.slug, ft.display_type, ", ".join(f"{o.name} (#{o.id})" for o in ft.options) or "-")
    console.print(table)


def show_product_picker(composer: CategoryComposer, selected: List[int]):
    table = Table(title="Products", box=box.SIMPLE, header_style="bold green")
    table.add_column("", width=3)
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", width=30)
    table.add_column("Current subcategory", width=24)
    for p in composer.snapshot.products:
        table.add_row(
            "☑" if p.id in selected else "☐",
            str(p.id),
            p.name,
            composer.snapshot.subcategory_name(p.subcategory) or "-",
        )
    console.print(table)
    console.print(f"[dim]{len(selected)} product(s) selected[/dim]")


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🗂️ Catalog Admin",
        "[bold blue]Categories, subcategories & filters[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Input helpers with autocomplete
# ---------------------------
def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def category_completer(composer: CategoryComposer):
    snap = composer.snapshot
    return WordCompleter([str(c.id) for c in snap.categories] if snap else [], ignore_case=True)


def ask_id(message: str, completer=None) -> Optional[int]:
    raw = prompt_with_autocomplete(message, completer=completer).strip()
    try:
        return int(raw)
    except ValueError:
        console.print("[red]Please enter a numeric ID.[/red]")
        return None


def ask_ids(message: str) -> List[int]:
    raw = Prompt.ask(message, default="")
    out = []
    for part in raw.replace(",", " ").split():
        try:
            out.append(int(part))
        except ValueError:
            console.print(f"[red]Ignoring '{part}', not an ID.[/red]")
    return out


def submit_until_done(save: Callable[[], bool], composer: CategoryComposer) -> None:
    # failed saves keep the form open; the user decides whether to retry
    while not busy(save):
        if not Confirm.ask("Retry?"):
            composer.cancel()
            return


# ---------------------------
# Workflows
# ---------------------------
def category_flow(composer: CategoryComposer, category_id: Optional[int] = None):
    form = composer.open_category(category_id)
    form.name = prompt_with_autocomplete("Category name", default=form.name)
    submit_until_done(composer.save_category, composer)


def subcategory_flow(composer: CategoryComposer, category_id: int, subcategory_id: Optional[int] = None):
    form = composer.open_subcategory(category_id, subcategory_id)
    form.name = prompt_with_autocomplete("Subcategory name", default=form.name)
    form.description = prompt_with_autocomplete("Description", default=form.description)

    if form.image:
        console.print(f"Current image: [link={form.image}]{form.image}[/link]")
        if Confirm.ask("Remove image?", default=False):
            composer.clear_image()
    path = Prompt.ask("Image file to upload (blank to skip)", default="")
    if path:
        busy(composer.upload_image, path)

    show_product_picker(composer, form.selected_products)
    for pid in ask_ids("Product IDs to toggle (space or comma separated)"):
        composer.toggle_product(pid)
    show_product_picker(composer, form.selected_products)

    submit_until_done(composer.save_subcategory, composer)


def filter_flow(composer: CategoryComposer, category_id: int):
    form = composer.open_filter_assignment(category_id)
    show_filter_types(composer)
    if Confirm.ask("Create a new filter type?", default=False):
        name = prompt_with_autocomplete("Filter type name")
        slug = Prompt.ask("Slug (blank to derive from name)", default="")
        busy(composer.quick_create_filter_type, name, slug or None)

    snap = composer.snapshot
    types = WordCompleter([str(ft.id) for ft in snap.filter_types], ignore_case=True)
    default_type = str(form.filter_type) if form.filter_type is not None else ""
    raw_type = prompt_with_autocomplete("Filter type ID", completer=types, default=default_type).strip()
    form.filter_type = int(raw_type) if raw_type.isdigit() else None

    category = snap.category(category_id)
    if category.subcategories:
        for sub in category.subcategories:
            console.print(f"  {sub.id}: {sub.name}")
        raw_sub = Prompt.ask("Subcategory ID (blank for the whole category)", default="")
        form.subcategory = int(raw_sub) if raw_sub.isdigit() else None
    form.display_order = IntPrompt.ask("Display order", default=0)
    form.is_active = Confirm.ask("Active?", default=True)

    submit_until_done(composer.save_filter_assignment, composer)


def filter_type_flow(composer: CategoryComposer, type_id: int):
    current = composer.snapshot.filter_type(type_id) if composer.snapshot else None
    if current is None:
        notify(f"No filter type #{type_id}", False)
        return
    name = prompt_with_autocomplete("Name", default=current.name)
    slug = Prompt.ask("Slug", default=current.slug)
    display_type = Prompt.ask(
        "Display type", choices=["checkbox", "color_swatch", "radio", "dropdown"], default=current.display_type
    )
    expanded = Confirm.ask("Expanded by default?", default=current.is_expanded_by_default)
    busy(composer.save_filter_type, type_id, name, slug, display_type, expanded)


def filter_type_completer(composer: CategoryComposer):
    snap = composer.snapshot
    return WordCompleter([str(ft.id) for ft in snap.filter_types] if snap else [], ignore_case=True)


# ---------------------------
# Main menu
# ---------------------------
def menu(composer: CategoryComposer):
    console.clear()
    console.print(create_header())
    busy(composer.load)

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "🗂️ Show categories", "8", "🗑️ Delete subcategory"),
            ("2", "↕️ Expand / collapse", "9", "🔎 Assign filter"),
            ("3", "➕ Add category", "10", "⏯️ Toggle filter on/off"),
            ("4", "✏️ Rename category", "11", "🔢 Filter display order"),
            ("5", "🗑️ Delete category", "12", "❌ Remove filter"),
            ("6", "➕ Add subcategory", "13", "📋 Filter types"),
            ("7", "✏️ Edit subcategory", "14", "🔄 Reload"),
            ("15", "✏️ Edit filter type", "16", "🗑️ Delete filter type"),
            ("17", "➕ Add filter option", "18", "🗑️ Delete filter option"),
            ("", "", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 19)] + ["q", "quit", "exit"])
        ).strip()

        try:
            if choice == "1":
                show_categories(composer)

            elif choice == "2":
                cid = ask_id("Category ID", category_completer(composer))
                if cid is not None:
                    composer.toggle(cid)
                    show_categories(composer)

            elif choice == "3":
                category_flow(composer)

            elif choice == "4":
                cid = ask_id("Category ID", category_completer(composer))
                if cid is not None:
                    category_flow(composer, cid)

            elif choice == "5":
                cid = ask_id("Category ID", category_completer(composer))
                if cid is not None:
                    busy(composer.delete_category, cid)

            elif choice == "6":
                cid = ask_id("Category ID", category_completer(composer))
                if cid is not None:
                    subcategory_flow(composer, cid)

            elif choice == "7":
                cid = ask_id("Category ID", category_completer(composer))
                sid = ask_id("Subcategory ID")
                if cid is not None and sid is not None:
                    subcategory_flow(composer, cid, sid)

            elif choice == "8":
                sid = ask_id("Subcategory ID")
                if sid is not None:
                    busy(composer.delete_subcategory, sid)

            elif choice == "9":
                cid = ask_id("Category ID", category_completer(composer))
                if cid is not None:
                    filter_flow(composer, cid)

            elif choice == "10":
                aid = ask_id("Assignment ID")
                if aid is not None:
                    assignments = composer.snapshot.category_filters if composer.snapshot else []
                    current = next((cf for cf in assignments if cf.id == aid), None)
                    if current is None:
                        notify(f"No assignment #{aid}", False)
                    else:
                        busy(composer.set_filter_active, aid, not current.is_active)

            elif choice == "11":
                aid = ask_id("Assignment ID")
                if aid is not None:
                    busy(composer.set_filter_order, aid, IntPrompt.ask("Display order", default=0))

            elif choice == "12":
                aid = ask_id("Assignment ID")
                if aid is not None:
                    busy(composer.delete_category_filter, aid)

            elif choice == "13":
                show_filter_types(composer)

            elif choice == "14":
                if busy(composer.load):
                    notify("Catalog reloaded", True)

            elif choice == "15":
                tid = ask_id("Filter type ID", filter_type_completer(composer))
                if tid is not None:
                    filter_type_flow(composer, tid)

            elif choice == "16":
                tid = ask_id("Filter type ID", filter_type_completer(composer))
                if tid is not None:
                    busy(composer.delete_filter_type, tid)

            elif choice == "17":
                tid = ask_id("Filter type ID", filter_type_completer(composer))
                if tid is not None:
                    name = prompt_with_autocomplete("Option name")
                    slug = Prompt.ask("Slug (blank to derive from name)", default="")
                    color = Prompt.ask("Colour code (blank for none)", default="")
                    busy(composer.add_filter_option, tid, name, slug or None, color or None)

            elif choice == "18":
                tid = ask_id("Filter type ID", filter_type_completer(composer))
                oid = ask_id("Option ID")
                if tid is not None and oid is not None:
                    busy(composer.delete_filter_option, tid, oid)

            elif choice.lower() in ("q", "quit", "exit"):
                if Confirm.ask("Are you sure you want to quit?"):
                    console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                    sys.exit(0)

        except EditorStateError as e:
            composer.cancel()
            notify(str(e), False)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    composer = CategoryComposer(CatalogClient.from_settings(settings), notify=notify, confirm=confirm)
    try:
        menu(composer)
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
