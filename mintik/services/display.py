from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

STATE_STYLES = {
    "active": ("🎯", "bold green"),
    "warning": ("🔥", "bold red"),
    "paused": ("⏸", "bold yellow"),
    "idle": ("☕", "bold cyan"),
}

def format_duration(seconds: int) -> str:
    hours, rem = divmod(max(0, int(seconds)), 3600)
    minutes = rem // 60
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"

def activity_bar(minutes: List[int]) -> str:
    """One character per minute, shaded by seconds of activity"""
    shades = " ▁▃▅▇"
    return "".join(shades[min(4, (s + 14) // 15)] for s in minutes)

class TerminalDisplay:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_status(self, state: Dict):
        """Current state, work time and the live hour's activity"""
        emoji, style = STATE_STYLES.get(state["appState"], ("❓", "bold"))
        header = Text()
        header.append(f"{emoji} {state['appState'].upper()}", style=style)
        header.append(f"  {state['formattedTime']}", style="bold")
        config = state.get("config", {})
        if config.get("focusDurationSec"):
            header.append(f"  / limit {format_duration(config['focusDurationSec'])}", style="dim")
        header.append("\n")
        header.append(activity_bar(state["minuteActivity"]), style="green")
        self.console.print(Panel(header, title="MinTik", expand=False))

    def show_daily_report(self, metrics: Dict):
        """Display one day's summary and hourly breakdown"""
        summary = metrics["summary"]
        rhythm = metrics["rhythm"]

        overview = Text()
        overview.append(f"📅 {summary['date']}\n", style="bold cyan")
        overview.append(f"Focus time: {format_duration(summary['active_seconds'])}\n")
        overview.append(f"Rest time: {format_duration(summary['rest_seconds'])}\n")
        overview.append(
            f"Sessions: {summary['focus_sessions']} focus / {summary['rest_sessions']} rest\n"
        )
        overview.append(f"Focus/rest ratio: {rhythm['focus_rest_ratio']}\n")
        if summary["peak_time"]:
            overview.append(f"Peak hour: {summary['peak_time']}", style="bold yellow")
        self.console.print(Panel(overview, title="Daily Summary", expand=False))

        if not summary["active_seconds"]:
            self.console.print("[yellow]No activity recorded for this day[/yellow]")
            return

        table = Table(title="Hourly Activity")
        table.add_column("Hour", style="cyan")
        table.add_column("Active", justify="right", style="green")
        table.add_column("Minutes used", justify="right", style="yellow")
        for hour, pattern in sorted(metrics["hourly_patterns"].items()):
            if not pattern["active_seconds"]:
                continue
            table.add_row(
                f"{int(hour):02d}:00",
                format_duration(pattern["active_seconds"]),
                str(pattern["active_minutes"])
            )
        self.console.print(table)

    def show_days(self, rows: List[Dict]):
        if not rows:
            self.console.print("[yellow]No days recorded yet[/yellow]")
            return
        table = Table(title="Recorded Days")
        table.add_column("Date", style="cyan")
        table.add_column("Focus", justify="right", style="green")
        table.add_column("Rest", justify="right", style="blue")
        table.add_column("Sessions", justify="right", style="yellow")
        table.add_column("Peak", justify="right", style="magenta")
        for row in rows:
            table.add_row(
                row["date"],
                format_duration(row["active_seconds"]),
                format_duration(row["rest_seconds"]),
                str(row["focus_sessions"]),
                row["peak_time"] or "-"
            )
        self.console.print(table)
