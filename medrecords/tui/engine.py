"""
Flow Engine.

Interprets the navigation graph: each dispatch renders one node, blocks for
a line of input, validates it and decides the next node id. ``run`` repeats
dispatches until input runs out or the process is interrupted.

There is exactly one outstanding read at any time. Screen and Session are
owned by the engine and handed to processors through it.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, Dict, Optional

from rich.console import Console

from medrecords.core.stores import PatientStore, UserStore
from medrecords.core.validation import clean_input, validate_field
from medrecords.tui.graph import (
    LOGIN_MENU,
    LOGOUT,
    ROLE_MENU,
    FormNode,
    MenuNode,
    NavigationGraph,
    Node,
    RecordNode,
    create_menu,
)
from medrecords.tui.processors import get_form_processor, get_record_handler
from medrecords.tui.renderer import Renderer
from medrecords.tui.screen import CONTINUE_PROMPT, Screen
from medrecords.tui.session import Session

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Patient Health System"


class ConsoleInput:
    """Reads one line from the terminal; password input is not echoed."""

    def __init__(self, console: Console):
        self.console = console

    def __call__(self, password: bool = False) -> str:
        return self.console.input(password=password)


class FlowEngine:
    """
    Dispatcher for menu, form and record nodes.

    Parameters
    ----------
    graph : NavigationGraph
        Node definitions
    users : UserStore
        User account store
    patients : PatientStore
        Patient record store
    renderer : Renderer, optional
        Screen renderer (defaults to one on a new Console)
    read_line : callable, optional
        ``read_line(password=False) -> str`` blocking line reader.
        Defaults to console input. Raising ``EOFError`` ends ``run``.
    title : str
        Title shown on every screen
    log_dir : Path
        Log directory, for the log viewer record

    Example
    -------
    >>> engine = FlowEngine(build_default_graph(), UserStore(users_file), PatientStore(patients_file))
    >>> engine.run()  # blocks on terminal input
    """

    def __init__(
        self,
        graph: NavigationGraph,
        users: UserStore,
        patients: PatientStore,
        renderer: Optional[Renderer] = None,
        read_line: Optional[Callable[..., str]] = None,
        title: str = DEFAULT_TITLE,
        log_dir: Path = Path("logs"),
    ):
        self.graph = graph
        self.users = users
        self.patients = patients
        self.renderer = renderer or Renderer()
        self.read_line = read_line or ConsoleInput(self.renderer.console)
        self.log_dir = Path(log_dir)

        self.screen = Screen(title=title)
        self.session = Session()

        self._node_handlers: Dict[type, Callable[[Node], Optional[str]]] = {
            MenuNode: self.handle_menu,
            FormNode: self.handle_form,
            RecordNode: self.handle_record,
        }

    # ═══════════════════════════════════════════════════════════════════
    # Terminal I/O
    # ═══════════════════════════════════════════════════════════════════

    def render(self) -> None:
        self.renderer.render(self.screen)

    def read(self, password: bool = False) -> str:
        """Block for one line of input and sanitise it."""
        if password:
            return clean_input(self.read_line(password=True))
        return clean_input(self.read_line())

    def show_message(self, message: str) -> None:
        """Show ``message`` and wait for enter."""
        self.screen.message = message
        self.render()
        self.read()

    def show_document(self, header: str, body: str) -> None:
        """Show a read-only page and wait for enter."""
        self.screen.show(header=header, body=body, prompt=CONTINUE_PROMPT)
        self.render()
        self.read()

    # ═══════════════════════════════════════════════════════════════════
    # Transitions
    # ═══════════════════════════════════════════════════════════════════

    def logout(self) -> None:
        """Clear the session and tell the user. No-op when nobody is logged in."""
        if not self.session.is_authenticated:
            return
        logger.info(f"User {self.session.current_user.get('email')} logged out")
        self.session.logout()
        self.show_message("You have been logged out!")

    def resolve_target(self, node_id: str) -> str:
        """Replace the role-menu sentinel with the session's menu id."""
        if node_id == ROLE_MENU:
            return self.session.role_menu()
        return node_id

    def dispatch(self, node_id: str) -> Optional[str]:
        """
        Run one node and decide where to go next.

        Parameters
        ----------
        node_id : str
            Node identifier or one of the ``roleMenu`` / ``LOGOUT`` sentinels

        Returns
        -------
        str or None
            Next node id, or None when the node should simply be shown again
            (invalid menu selection)
        """
        node_id = self.resolve_target(node_id)

        if node_id == LOGOUT:
            self.logout()
            return LOGIN_MENU

        # Returning to the login menu always starts an anonymous session
        if node_id == LOGIN_MENU:
            self.logout()

        node = self.graph.resolve(node_id)
        if node is None:
            logger.error(f"Navigation target not found: {node_id}")
            self.show_message(f"Navigation error: '{node_id}' does not exist!")
            return self.fallback(node_id)

        handler = self._node_handlers.get(type(node))
        if handler is None:
            logger.error(f"Unknown object type {type(node).__name__} for {node_id}")
            self.show_message(f"Unknown object type: {getattr(node, 'type', type(node).__name__)}")
            return self.fallback(node_id)

        logger.debug(f"Dispatching {node.type} {node_id}")
        return handler(node)

    def fallback(self, failed_id: str) -> str:
        """Where to go after a lookup error: the role menu, or login if that failed too."""
        target = self.session.role_menu()
        if target == failed_id and target != LOGIN_MENU:
            return LOGIN_MENU
        return target

    def run(self, start: str = LOGIN_MENU) -> None:
        """
        Dispatch nodes until input ends.

        Raises
        ------
        EOFError
            When the input stream is exhausted
        KeyboardInterrupt
            When the user interrupts the session
        """
        logger.info(f"Flow started at {start}")
        current = start
        while True:
            next_id = self.dispatch(current)
            if next_id is not None:
                current = next_id

    # ═══════════════════════════════════════════════════════════════════
    # Node Handlers
    # ═══════════════════════════════════════════════════════════════════

    def handle_menu(self, node: MenuNode) -> Optional[str]:
        """Show the numbered items and follow the selected action."""
        self.screen.show(
            header=node.name,
            body=create_menu(node.items),
            prompt=f"Select an option (1-{len(node.keys)})",
        )
        self.render()
        choice = self.read()

        if not choice.isdecimal() or int(choice) not in node.items:
            logger.info(f"Invalid selection {choice!r} in {node.id}")
            self.show_message("Invalid Selection!")
            return None

        return node.items[int(choice)].action

    def handle_form(self, node: FormNode) -> str:
        """Collect every field in order, then hand the answers to the form processor."""
        data: Dict[str, str] = {}
        for field in node.fields:
            while True:
                self.screen.show(
                    header=node.name,
                    body=self.form_body(node, data),
                    prompt=f"Enter {field.label.lower()}",
                )
                self.render()
                value = self.read(password=field.type == "password")

                result = validate_field(field, value, data)
                if result.valid:
                    data[field.name] = value
                    break

                logger.info(f"Validation failed for {node.id}.{field.name}")
                self.show_message(result.message)

        processor = get_form_processor(node.id)
        if processor(self, data):
            return self.resolve_target(node.next)
        return self.session.role_menu()

    def handle_record(self, node: RecordNode) -> str:
        handler = get_record_handler(node.id)
        if handler is None:
            logger.warning(f"No handler registered for record {node.id}")
            self.show_message(f"{node.name} is not implemented yet!")
        else:
            handler(self, node)
        return self.session.role_menu()

    @staticmethod
    def form_body(node: FormNode, data: Dict[str, str]) -> str:
        """Answers collected so far, passwords masked."""
        lines = []
        for field in node.fields:
            if field.name not in data:
                break
            value = data[field.name]
            if field.type == "password":
                value = "*" * len(value)
            lines.append(f"{field.label}: {value}")
        return "\n".join(lines)
