"""Display and formatting service for worktree information"""
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from arbor.logging_config import get_logger
from arbor.models.worktree import Worktree

logger = get_logger(__name__)

ROW_STYLES = {
    "current": "bold green",
    "main": "cyan",
    "merged": "yellow",
}


def format_flags(worktree: Worktree) -> str:
    flags = []
    if worktree.is_current:
        flags.append("*")
    if worktree.is_main:
        flags.append("main")
    if worktree.is_merged:
        flags.append("merged")
    return " ".join(flags)


def row_style(worktree: Worktree) -> Optional[str]:
    if worktree.is_current:
        return ROW_STYLES["current"]
    if worktree.is_main:
        return ROW_STYLES["main"]
    if worktree.is_merged:
        return ROW_STYLES["merged"]
    return None


class DisplayService:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_worktree_table(self, worktrees: List[Worktree], project_name: str = "", show_legend: bool = False) -> None:
        """Display a table of worktrees."""
        table = Table(title=project_name or None)
        table.add_column("Worktree")
        table.add_column("Branch")
        table.add_column("Path")
        table.add_column("Status")

        for wt in worktrees:
            table.add_row(wt.name, wt.branch, wt.path, format_flags(wt), style=row_style(wt))

        self.console.print(table)

        if show_legend:
            self.console.print("\nLegend:")
            self.console.print("* = Current worktree     main = Default branch")
            self.console.print("Yellow = Merged into the default branch (prune would remove it)")

    def display_worktree_paths(self, worktrees: List[Worktree]) -> None:
        """One ``name<TAB>path`` line per worktree, for scripts."""
        for wt in worktrees:
            self.console.print(f"{wt.name}\t{wt.path}", markup=False, highlight=False, soft_wrap=True)
