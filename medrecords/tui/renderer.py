"""
Screen Renderer.

Turns a Screen into terminal lines. The ``*_lines`` helpers are pure and
return the exact lines for one part of the screen; ``Renderer`` clears the
terminal and prints them through a rich Console.

Decoration width always equals the width of the text it decorates:

    Patient Health System
    ═════════════════════
    Welcome
    ───────
    1. Login
    ──────────────────────────────
    > Select an option (1-2):
"""

from __future__ import annotations
from typing import Any, List, Mapping, Optional, Union

from rich.console import Console

from medrecords.tui.screen import CONTINUE_PROMPT, Screen

TITLE_RULE = "═"
RULE = "─"
CONTINUE_TEXT = "> Press enter to continue..."
EMPTY_PROMPT_TEXT = "..."


def title_lines(title: Optional[str]) -> List[str]:
    """Title plus a ``═`` underline; nothing for an empty or missing title."""
    if not title:
        return []
    return [title, TITLE_RULE * len(title)]


def header_lines(header: Optional[str]) -> List[str]:
    """Header plus a ``─`` underline. An empty string still emits one blank line."""
    if header is None:
        return []
    if not header:
        return [header]
    return [header, RULE * len(header)]


def body_lines(body: Optional[str]) -> List[str]:
    """Body as a single entry, which may itself contain line breaks."""
    if not body:
        return []
    return [body]


def prompt_lines(prompt: Optional[str]) -> List[str]:
    """
    Prompt footer.

    - ``None`` emits nothing
    - ``""`` emits ``"..."``
    - ``"continue"`` emits a rule and ``"> Press enter to continue..."``
    - anything else emits a rule and ``"> {prompt}: "``
    """
    if prompt is None:
        return []
    if prompt == "":
        return [EMPTY_PROMPT_TEXT]
    if prompt == CONTINUE_PROMPT:
        text = CONTINUE_TEXT
    else:
        text = f"> {prompt}: "
    return [RULE * len(text), text]


def message_lines(message: Optional[str]) -> List[str]:
    """Bracketed message; nothing when there is no message."""
    if not message:
        return []
    return [f"[{message}]"]


def screen_lines(screen: Union[Screen, Mapping[str, Any], None]) -> Optional[List[str]]:
    """
    Compute every line of a full screen render.

    Returns
    -------
    list[str] or None
        ``None`` for a missing screen, meaning nothing is drawn (not even a
        clear). Otherwise the lines to print after clearing the terminal.
    """
    if screen is None:
        return None
    if isinstance(screen, Mapping):
        screen = Screen(**screen)

    if screen.is_empty():
        return []

    lines = title_lines(screen.title)
    if screen.message:
        lines += message_lines(screen.message)
        lines += prompt_lines(CONTINUE_PROMPT)
        return lines

    lines += header_lines(screen.header)
    lines += body_lines(screen.body)
    lines += prompt_lines(screen.prompt)
    return lines


class Renderer:
    """
    Writes screens to the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich console used for output. Defaults to a new Console.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, screen: Union[Screen, Mapping[str, Any], None]) -> None:
        """Clear the terminal and draw ``screen``. A missing screen draws nothing."""
        lines = screen_lines(screen)
        if lines is None:
            return

        self.console.clear()
        for line in lines:
            # Records and messages may contain "[...]" which must not be read as markup
            self.console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def banner(self, title: str, subtitle: str = "") -> None:
        """Print the startup banner."""
        self.console.rule(f"[bold cyan]{title}[/bold cyan]")
        if subtitle:
            self.console.print(subtitle, style="dim", justify="center")
