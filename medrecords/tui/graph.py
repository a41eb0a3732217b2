"""
Navigation Graph.

Static, id-addressed collection of menu, form and record nodes. Nodes refer
to each other by identifier only, so the graph holds no object references
and can be defined once at import time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

# ═══════════════════════════════════════════════════════════════════
# Identifiers
# ═══════════════════════════════════════════════════════════════════

LOGIN_MENU = "LOGIN_MENU"
PATIENT_MENU = "PATIENT_MENU"
PROFESSIONAL_MENU = "PROFESSIONAL_MENU"
ADMIN_MENU = "ADMIN_MENU"

USER_LOGIN_FORM = "USER_LOGIN_FORM"
USER_CREATE_FORM = "USER_CREATE_FORM"
SEARCH_PATIENT_FORM = "SEARCH_PATIENT_FORM"

VIEW_MY_RECORD = "VIEW_MY_RECORD"
VIEW_MY_PROFILE = "VIEW_MY_PROFILE"
VIEW_MY_PATIENTS = "VIEW_MY_PATIENTS"
VIEW_ALL_RECORDS = "VIEW_ALL_RECORDS"
VIEW_ALL_USERS = "VIEW_ALL_USERS"
VIEW_LOGS = "VIEW_LOGS"

# Pseudo-states handled by the engine rather than looked up in the graph
ROLE_MENU = "roleMenu"
LOGOUT = "LOGOUT"
SENTINELS = frozenset({ROLE_MENU, LOGOUT})


# ═══════════════════════════════════════════════════════════════════
# Node Types
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MenuItem:
    """One numbered menu entry; ``action`` is a node identifier."""

    title: str
    action: str


@dataclass(frozen=True)
class FormField:
    """One field collected by a form."""

    name: str
    label: str
    type: Literal["text", "password"] = "text"
    required: bool = True


@dataclass(frozen=True)
class MenuNode:
    id: str
    name: str
    items: Mapping[int, MenuItem]
    type: Literal["menu"] = field(default="menu", init=False)

    def __post_init__(self):
        object.__setattr__(self, "items", MappingProxyType(dict(self.items)))

    @property
    def keys(self) -> List[int]:
        """Item numbers in ascending order."""
        return sorted(self.items)


@dataclass(frozen=True)
class FormNode:
    id: str
    name: str
    fields: Tuple[FormField, ...]
    next: str = ROLE_MENU
    type: Literal["form"] = field(default="form", init=False)

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))


@dataclass(frozen=True)
class RecordNode:
    id: str
    name: str
    description: str = ""
    type: Literal["record"] = field(default="record", init=False)


Node = Union[MenuNode, FormNode, RecordNode]


# ═══════════════════════════════════════════════════════════════════
# Graph
# ═══════════════════════════════════════════════════════════════════

class NavigationGraph:
    """
    Immutable mapping from node id to node.

    Parameters
    ----------
    nodes : Iterable[Node]
        Node definitions. Identifiers must be unique.

    Raises
    ------
    ValueError
        If two nodes share an identifier or a node uses a sentinel name
    """

    def __init__(self, nodes: Iterable[Node]):
        table: Dict[str, Node] = {}
        for node in nodes:
            if node.id in table:
                raise ValueError(f"Duplicate node id: {node.id}")
            if node.id in SENTINELS:
                raise ValueError(f"Node id {node.id!r} is reserved")
            table[node.id] = node
        self._nodes = MappingProxyType(table)

    def resolve(self, node_id: str) -> Optional[Node]:
        """Look up a node by identifier; ``None`` if it does not exist."""
        return self._nodes.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def ids(self) -> List[str]:
        return list(self._nodes)

    def references(self) -> List[Tuple[str, str]]:
        """All (source id, target id) pairs from menu actions and form ``next``."""
        refs = []
        for node in self._nodes.values():
            if isinstance(node, MenuNode):
                refs.extend((node.id, node.items[key].action) for key in node.keys)
            elif isinstance(node, FormNode):
                refs.append((node.id, node.next))
        return refs

    def validate(self) -> List[str]:
        """
        Check that every reference resolves.

        Returns
        -------
        list[str]
            One description per dangling reference (empty when the graph is sound)
        """
        return [
            f"{source} -> {target}"
            for source, target in self.references()
            if target not in self._nodes and target not in SENTINELS
        ]


def build_default_graph() -> NavigationGraph:
    """Menus, forms and records of the Patient Health System."""
    return NavigationGraph([
        MenuNode(LOGIN_MENU, "Welcome! Please login or create an account.", {
            1: MenuItem("1. Login (Existing user)", USER_LOGIN_FORM),
            2: MenuItem("2. Create account (New user)", USER_CREATE_FORM),
        }),
        MenuNode(PATIENT_MENU, "Patient Menu", {
            1: MenuItem("1. View my medical record", VIEW_MY_RECORD),
            2: MenuItem("2. View my profile", VIEW_MY_PROFILE),
            3: MenuItem("3. Logout", LOGOUT),
        }),
        MenuNode(PROFESSIONAL_MENU, "Professional Menu", {
            1: MenuItem("1. View my patients", VIEW_MY_PATIENTS),
            2: MenuItem("2. Search patient by NHI", SEARCH_PATIENT_FORM),
            3: MenuItem("3. View all patient records", VIEW_ALL_RECORDS),
            4: MenuItem("4. View my profile", VIEW_MY_PROFILE),
            5: MenuItem("5. Logout", LOGOUT),
        }),
        MenuNode(ADMIN_MENU, "Administrator Menu", {
            1: MenuItem("1. View all patient records", VIEW_ALL_RECORDS),
            2: MenuItem("2. Search patient by NHI", SEARCH_PATIENT_FORM),
            3: MenuItem("3. View all users", VIEW_ALL_USERS),
            4: MenuItem("4. View application log", VIEW_LOGS),
            5: MenuItem("5. Logout", LOGOUT),
        }),
        FormNode(USER_LOGIN_FORM, "User Login", (
            FormField("email", "Email"),
            FormField("password", "Password", type="password"),
        ), next=ROLE_MENU),
        FormNode(USER_CREATE_FORM, "Create Account", (
            FormField("firstName", "First name"),
            FormField("lastName", "Last name"),
            FormField("email", "Email"),
            FormField("password", "Password", type="password"),
            FormField("confirmPassword", "Confirm password", type="password"),
        ), next=LOGIN_MENU),
        FormNode(SEARCH_PATIENT_FORM, "Search Patient", (
            FormField("nhi", "NHI number"),
        ), next=ROLE_MENU),
        RecordNode(VIEW_MY_RECORD, "My Medical Record", "Medical history of the logged-in patient"),
        RecordNode(VIEW_MY_PROFILE, "My Profile", "Account details of the logged-in user"),
        RecordNode(VIEW_MY_PATIENTS, "My Patients", "Patients assigned to the logged-in professional"),
        RecordNode(VIEW_ALL_RECORDS, "All Patient Records", "Summary of every patient record"),
        RecordNode(VIEW_ALL_USERS, "All Users", "Every registered account"),
        RecordNode(VIEW_LOGS, "Application Log", "Recent application log entries"),
    ])


def create_menu(items: Optional[Mapping]) -> str:
    """
    Build a menu body from numbered items.

    Item titles are joined by newlines in ascending numeric key order.
    Keys that are not numeric are ignored. Items may be ``MenuItem`` objects
    or mappings with a ``title`` key.

    Example
    -------
    >>> create_menu({1: {"title": "A"}, 2: {"title": "B"}})
    'A\\nB'
    """
    if not items:
        return ""
    numbered = sorted(
        ((int(key), item) for key, item in items.items() if str(key).isdecimal()),
        key=lambda pair: pair[0],
    )
    titles = []
    for _, item in numbered:
        titles.append(item["title"] if isinstance(item, Mapping) else item.title)
    return "\n".join(titles)
