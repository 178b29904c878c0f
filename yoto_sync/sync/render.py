"""
Terminal rendering of a sync plan with rich.

Example:
    Road Trip → Bedtime Songs
     #   Action   Title
     1   keep     Sweet Home Alabama
     2   + add    Hotel California
     -   - remove Old Song

    1 keep, 1 add, 1 remove
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from yoto_sync.sync.models import SourcePlaylist, SyncAction, SyncPlan


ACTION_STYLES = {
    SyncAction.KEEP: ("keep", "dim"),
    SyncAction.ADD: ("+ add", "green"),
    SyncAction.REMOVE: ("- remove", "red"),
}


def build_plan_table(plan: SyncPlan, source: SourcePlaylist, target_name: str) -> Table:
    """Build a rich Table listing every plan item, removals last.

    Titles come from YouTube and Yoto and are escaped, so brackets in them
    print as typed.
    """
    table = Table(title=f"{escape(source.title)} → {escape(target_name)}", title_justify="left")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Action")
    table.add_column("Title", overflow="fold")

    for item in list(plan.positional_items()) + plan.items_to_remove():
        label, style = ACTION_STYLES[item.action]
        position = str(item.position) if item.position is not None else "-"
        table.add_row(position, f"[{style}]{label}[/{style}]", escape(item.title))

    return table


class RichPlanRenderer:
    """Prints the plan table followed by a one-line summary."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def __call__(self, plan: SyncPlan, source: SourcePlaylist, target_name: str) -> None:
        self.console.print(build_plan_table(plan, source, target_name))
        self.console.print(
            f"[dim]{plan.keep_count} keep[/dim], "
            f"[green]{plan.add_count} add[/green], "
            f"[red]{plan.remove_count} remove[/red]"
        )
