# cli.py
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.shopclient import ShopAPIError, StoreClient

console = Console()
c = StoreClient(base_url=os.getenv("MOCKSHOP_URL", "http://127.0.0.1:3000"))

# Global state for status messages and caching
status_message = "Ready"
category_cache: List[str] = []
brand_cache: List[str] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], pagination: Optional[Dict[str, Any]] = None):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    title = "📦 Products Catalog"
    if pagination:
        title += f" (page {pagination['currentPage']}/{pagination['totalPages']}, {pagination['totalItems']} items)"

    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=5)
    table.add_column("Name", style="bold", width=30)
    table.add_column("Brand", width=12)
    table.add_column("Category", width=16)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Rating", justify="right", width=7)
    table.add_column("Stock", justify="right", width=7)

    for p in products:
        in_stock = p.get("inStock") and p.get("stock", 0) > 0
        stock = f"[green]{p.get('stock', 0)}[/green]" if in_stock else "[red]out[/red]"
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("name", "N/A"),
            p.get("brand", ""),
            f"{p.get('category', '')} / {p.get('subcategory', '')}",
            f"${p.get('price', 0):.2f}",
            f"{p.get('rating', 0):.1f}",
            stock,
        )
    console.print(table)


def show_cart(cart: Dict[str, Any], session_id: str = ""):
    if not cart:
        console.print("[italic yellow]No cart data[/italic yellow]")
        return

    summary = cart.get("summary", {})
    title = Text()
    title.append("🛒 Shopping Cart", style="bold")
    if session_id:
        title.append(f" - {session_id}", style="bold cyan")
    title.append(f" - Total: ${summary.get('subtotal', 0):.2f}", style="bold green")

    items = cart.get("items", [])
    if not items:
        console.print(Panel("Your cart is empty 🛍️", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("ID", style="dim", width=5)
    table.add_column("Product", style="bold", width=30)
    table.add_column("Qty", justify="right", width=6)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Line total", justify="right", width=12)

    for it in items:
        table.add_row(
            str(it.get("productId", "?")),
            it.get("name", "Unknown"),
            str(it.get("quantity", 0)),
            f"${it.get('price', 0):.2f}",
            f"${it.get('price', 0) * it.get('quantity', 0):.2f}",
        )
    table.caption = f"{summary.get('itemCount', 0)} item(s)"
    console.print(Panel(table, title=title, border_style="blue"))


def show_feed(feed_page: Dict[str, Any]):
    items = feed_page.get("data", [])
    pagination = feed_page.get("pagination", {})
    if not items:
        console.print("[italic yellow]No more feed items[/italic yellow]")
        return

    table = Table(title="📰 Feed", box=box.SIMPLE_HEAVY, header_style="bold yellow")
    table.add_column("#", style="dim", width=4)
    table.add_column("Category", width=12)
    table.add_column("Title", width=40)
    table.add_column("Author", width=16)
    for item in items:
        table.add_row(
            str(item.get("id", "")),
            item.get("category", ""),
            item.get("title", ""),
            item.get("author", ""),
        )
    more = "more available" if pagination.get("hasMore") else "end of feed"
    table.caption = f"{pagination.get('returned', len(items))} of {pagination.get('total', '?')} ({more})"
    console.print(table)


def show_issues(result: Dict[str, Any]):
    if result.get("success"):
        console.print(Panel.fit("[green]Cart is valid and ready for checkout[/green]", title="✅ Validation"))
        show_cart(result.get("data", {}))
        return

    table = Table(title="⚠️ Cart issues", box=box.ROUNDED, header_style="bold red", show_lines=True)
    table.add_column("Product", width=8)
    table.add_column("Name", width=30)
    table.add_column("Issue", width=20)
    table.add_column("Details", width=30)
    for issue in result.get("issues", []):
        details = ""
        if "available" in issue:
            details = f"requested {issue['requested']}, available {issue['available']}"
        elif "newPrice" in issue:
            details = f"${issue['oldPrice']:.2f} → ${issue['newPrice']:.2f}"
        table.add_row(str(issue.get("productId")), issue.get("name", "-"), issue.get("issue", ""), details)
    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner. API and connection errors
    are shown in the status panel and None is returned.
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
    except ShopAPIError as e:
        status_message = f"Error: {e.message}"
    except Exception as e:
        status_message = f"Error: {e}"
    console.print(show_status(status_message, False))
    return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def refresh_filter_cache():
    global category_cache, brand_cache
    options = try_api(c.product_filters) or {}
    category_cache = options.get("categories", [])
    brand_cache = options.get("brands", [])


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ mockshop",
        "[bold blue]Frontend Interview API Explorer[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Menu actions
# ---------------------------
def browse_products():
    search = prompt_with_autocomplete("Search term (blank for all)")
    category = prompt_with_autocomplete("Category", completer=WordCompleter(category_cache, ignore_case=True))
    brand = prompt_with_autocomplete("Brand", completer=WordCompleter(brand_cache, ignore_case=True))
    sort = Prompt.ask("Sort by", choices=["name", "price", "rating"], default="name")
    order = Prompt.ask("Order", choices=["asc", "desc"], default="asc")
    in_stock = Confirm.ask("Only in-stock items?", default=False)

    page = 1
    while True:
        resp = try_api(
            c.list_products,
            search=search or None, category=category or None, brand=brand or None,
            sort=sort, order=order, inStock="true" if in_stock else None, page=page,
        )
        if resp is None:
            return
        show_products(resp["data"], resp["pagination"])
        if not resp["pagination"]["hasNextPage"] or not Confirm.ask("Next page?", default=True):
            return
        page += 1


def scroll_feed():
    categories = try_api(c.feed_categories) or []
    category = prompt_with_autocomplete("Feed category (blank for all)", completer=WordCompleter(categories))
    cursor = 0
    while cursor is not None:
        resp = try_api(c.get_feed, cursor=cursor, category=category or None)
        if resp is None:
            return
        show_feed(resp)
        cursor = resp["pagination"]["nextCursor"]
        if cursor is not None and not Confirm.ask("Load more?", default=True):
            return


def pick_location():
    countries = try_api(c.list_countries) or []
    for country in countries:
        console.print(f"  [cyan]{country['id']}[/cyan] {country['name']}")
    country_id = IntPrompt.ask("Country id")
    states = try_api(c.list_states, country_id) or []
    if not states:
        console.print("[yellow]No states for that country[/yellow]")
        return
    for state in states:
        console.print(f"  [cyan]{state['id']}[/cyan] {state['name']}")
    state_id = IntPrompt.ask("State id")
    cities = try_api(c.list_cities, state_id) or []
    for city in cities:
        console.print(f"  [cyan]{city['id']}[/cyan] {city['name']}")


def menu():
    global status_message

    console.clear()
    console.print(create_header())
    refresh_filter_cache()

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 Browse products", "6", "✏️ Update quantity"),
            ("2", "ℹ️ Get product by ID", "7", "➖ Remove from cart"),
            ("3", "📰 Scroll feed", "8", "✅ Validate cart"),
            ("4", "🌍 Country/state/city", "9", "🗑️ Clear cart"),
            ("5", "🛒 Add to cart", "10", "👀 View cart"),
            ("", "", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title=f"📋 Menu ({c.session_id})", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 11)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            browse_products()

        elif choice == "2":
            pid = IntPrompt.ask("Product ID")
            product = try_api(c.get_product, pid, success_msg=f"Product {pid} details loaded")
            if product:
                show_products([product])

        elif choice == "3":
            scroll_feed()

        elif choice == "4":
            pick_location()

        elif choice == "5":
            pid = IntPrompt.ask("Product ID")
            qty = IntPrompt.ask("Quantity", default=1)
            cart = try_api(c.add_to_cart, pid, qty, success_msg=f"Added {qty} of product {pid} to cart")
            if cart is not None:
                show_cart(cart, c.session_id)

        elif choice == "6":
            pid = IntPrompt.ask("Product ID")
            qty = IntPrompt.ask("New quantity (0 removes)", default=1)
            cart = try_api(c.update_cart, pid, qty, success_msg=f"Product {pid} set to {qty}")
            if cart is not None:
                show_cart(cart, c.session_id)

        elif choice == "7":
            pid = IntPrompt.ask("Product ID")
            cart = try_api(c.remove_from_cart, pid, success_msg=f"Product {pid} removed from cart")
            if cart is not None:
                show_cart(cart, c.session_id)

        elif choice == "8":
            result = try_api(c.validate_cart)
            if result is not None:
                show_issues(result)

        elif choice == "9":
            if Confirm.ask("[red]Empty the cart?[/red]"):
                try_api(c.clear_cart, success_msg="Cart cleared")

        elif choice == "10":
            cart = try_api(c.view_cart, success_msg="Cart loaded")
            if cart is not None:
                show_cart(cart, c.session_id)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thanks for shopping! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
