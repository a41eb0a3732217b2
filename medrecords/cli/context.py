"""
Command context object for CLI commands.

Provides unified access to shared resources (console, config, stores)
and convenience methods for common operations.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm

from medrecords.cli.config import AppConfig
from medrecords.core.stores import PatientStore, UserStore


@dataclass
class CommandContext:
    """Shared context for all CLI commands"""

    console: Console
    config: AppConfig
    _users: Optional[UserStore] = field(default=None, repr=False)
    _patients: Optional[PatientStore] = field(default=None, repr=False)

    # Convenience properties from config
    @property
    def verbose(self) -> bool:
        return self.config.verbose

    @property
    def users_file(self) -> Path:
        return self.config.users_file

    @property
    def patients_file(self) -> Path:
        return self.config.patients_file

    @property
    def users(self) -> UserStore:
        if self._users is None:
            self._users = UserStore(self.config.users_file)
        return self._users

    @property
    def patients(self) -> PatientStore:
        if self._patients is None:
            self._patients = PatientStore(self.config.patients_file)
        return self._patients

    # Convenience methods
    def print(self, *args, **kwargs):
        """Print to console"""
        self.console.print(*args, **kwargs)

    def print_error(self, message: str):
        """Print error message"""
        self.console.print(f"[red]Error:[/red] {message}")

    def print_success(self, message: str):
        """Print success message"""
        self.console.print(f"[green]✓[/green] {message}")

    def print_warning(self, message: str):
        """Print warning message"""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def confirm_action(self, prompt: str, assume_yes: bool = False) -> bool:
        """Prompt user for confirmation (returns True when assume_yes)"""
        if assume_yes:
            return True
        return Confirm.ask(prompt, console=self.console)


# Global context
_context: Optional[CommandContext] = None


def get_context() -> CommandContext:
    """Get or create global command context."""
    global _context
    if _context is None:
        from medrecords.cli.main import get_config
        _context = CommandContext(console=Console(), config=get_config())
    return _context


def set_context(ctx: CommandContext):
    """Set global context (for testing)"""
    global _context
    _context = ctx


def reset_context():
    """Reset global context instance."""
    global _context
    _context = None


def create_context(
    config: Optional[AppConfig] = None,
    console: Optional[Console] = None,
) -> CommandContext:
    """Create a new context (useful for testing)"""
    from medrecords.cli.main import get_config

    return CommandContext(
        console=console or Console(),
        config=config or get_config(),
    )
