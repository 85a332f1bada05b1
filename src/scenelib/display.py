"""Terminal rendering of query results with rich."""

from typing import Iterable, Optional

from rich.table import Table
from rich.tree import Tree

from scenelib.content.compose import Page
from scenelib.content.tree import CHEVRON_CLOSED, CHEVRON_OPEN, TreeNode

_CHEVRONS = {CHEVRON_OPEN: "v", CHEVRON_CLOSED: ">"}


def _node_label(node: TreeNode) -> str:
    star = "[yellow]*[/yellow] " if node.is_favorite else ""
    chevron = _CHEVRONS.get(node.chevron, " ")
    color = node.folder.color or "cyan"
    name = f"[bold {color}]{node.folder.name}[/bold {color}]" if node.is_active else (
        f"[{color}]{node.folder.name}[/{color}]"
    )
    return f"{chevron} {star}{name} ({node.item_count})"


def render_tree(nodes: Iterable[TreeNode], title: str = "Folders") -> Tree:
    """Build a rich Tree of the visible folder nodes."""
    tree = Tree(f"[bold]{title}[/bold]")

    def add_node(parent: Tree, node: TreeNode) -> None:
        branch = parent.add(_node_label(node))
        for child in node.children:
            add_node(branch, child)

    for node in nodes:
        add_node(tree, node)
    return tree


def render_page(page: Page, show_tags: bool = False, title: Optional[str] = None) -> Table:
    """Build a rich Table listing one page of items."""
    caption = f"Page {page.page}/{max(page.total_pages, 1)} - {page.total} scenes"
    table = Table(title=title, caption=caption)
    table.add_column("", width=1)
    table.add_column("Name")
    if show_tags:
        table.add_column("Tags", style="dim")
    table.add_column("Status", style="dim")

    for item in page.items:
        status = []
        if item.active:
            status.append("active")
        if item.navigation:
            status.append("nav")
        if item.has_grid:
            status.append("grid")
        if item.has_vision:
            status.append("vision")
        row = ["*" if item.is_favorite else "", item.name]
        if show_tags:
            row.append(", ".join(f"#{tag}" for tag in item.tags))
        row.append(" ".join(status))
        table.add_row(*row)

    for error in page.errors:
        table.add_row("!", f"[red]{error}[/red]", *([""] * (len(table.columns) - 2)))
    return table
