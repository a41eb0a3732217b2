"""
Screen Model.

Holds the five renderable fields of the currently displayed screen. The
engine mutates one instance in place on every navigation step and the
renderer reads it straight after.
"""

from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field


# Prompt value that renders the "press enter" footer instead of a question
CONTINUE_PROMPT = "continue"


class Screen(BaseModel):
    """
    Renderable snapshot of the terminal.

    When ``message`` is set the screen is in message mode: only the title
    and the message are drawn, followed by the continue footer.

    Example
    -------
    >>> screen = Screen(title="Patient Health System")
    >>> screen.show(header="Welcome", body="1. Login", prompt="Select an option (1-1)")
    >>> screen.message = "Invalid Selection!"
    """

    model_config = {
        "validate_assignment": True,
    }

    title: Optional[str] = Field(default=None, description="Application title line")
    header: Optional[str] = Field(default=None, description="Name of the current node")
    body: Optional[str] = Field(default=None, description="Main content, may contain line breaks")
    prompt: Optional[str] = Field(default=None, description="Question shown above the input line")
    message: Optional[str] = Field(default=None, description="Transient message (supersedes header/body/prompt)")

    def show(
        self,
        header: Optional[str] = None,
        body: Optional[str] = None,
        prompt: Optional[str] = None,
    ) -> None:
        """Replace header, body and prompt, leaving message mode."""
        self.header = header
        self.body = body
        self.prompt = prompt
        self.message = None

    def is_empty(self) -> bool:
        """True when no field is set at all."""
        return all(
            getattr(self, name) is None
            for name in ("title", "header", "body", "prompt", "message")
        )
