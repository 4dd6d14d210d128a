"""Break reminders: the notification port and its implementations"""
import logging
import subprocess
import sys
from typing import Optional, Protocol

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

logger = logging.getLogger(__name__)

class NotificationSink(Protocol):
    def dispatch_warning(self, message: str) -> None:
        ...

    def show_reminder(self, minutes: int) -> None:
        ...

def warning_message(minutes: int) -> str:
    return f"Time for a break: you have been focused for {minutes} minutes."

class ConsoleNotifier:
    """Prints reminders to the terminal"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def dispatch_warning(self, message: str) -> None:
        self.console.bell()
        self.console.print(f"[bold yellow]⏰ {message}[/bold yellow]")

    def show_reminder(self, minutes: int) -> None:
        body = Text(justify="center")
        body.append(f"{minutes} minutes of focus\n", style="bold red")
        body.append("Stand up, look away from the screen, stretch.", style="dim")
        self.console.print(Panel(body, title="Break time", expand=True))

class SystemNotifier(ConsoleNotifier):
    """Desktop notification via osascript / notify-send, console as fallback"""

    TITLE = "MinTik"

    def dispatch_warning(self, message: str) -> None:
        if not self._send(message):
            super().dispatch_warning(message)

    def _send(self, message: str) -> bool:
        if sys.platform == "darwin":
            script = f'display notification "{message}" with title "{self.TITLE}" sound name "default"'
            cmd = ["osascript", "-e", script]
        elif sys.platform.startswith("linux"):
            cmd = ["notify-send", self.TITLE, message]
        else:
            return False
        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=5)
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Desktop notification failed: {e}")
            return False
