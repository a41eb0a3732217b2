"""
Session State.

Single-slot login state for the running process, using a Pydantic model
like the rest of the application state.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from medrecords.tui.graph import ADMIN_MENU, LOGIN_MENU, PATIENT_MENU, PROFESSIONAL_MENU

# Role -> menu shown after login
ROLE_MENUS: Dict[str, str] = {
    "patient": PATIENT_MENU,
    "professional": PROFESSIONAL_MENU,
    "admin": ADMIN_MENU,
}


class Session(BaseModel):
    """
    The logged-in principal, or nobody.

    Example
    -------
    >>> session = Session()
    >>> session.login({"email": "pro@email.com", "role": "professional"})
    >>> session.role_menu()
    'PROFESSIONAL_MENU'
    >>> session.logout()
    >>> session.role_menu()
    'LOGIN_MENU'
    """

    model_config = {
        "validate_assignment": True,
    }

    current_user: Optional[Dict[str, Any]] = Field(
        default=None,
        description="User record of the logged-in user (None when anonymous)"
    )

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @property
    def role(self) -> Optional[str]:
        if self.current_user is None:
            return None
        return self.current_user.get("role")

    def login(self, user: Dict[str, Any]) -> None:
        """Make ``user`` the current principal, replacing any previous one."""
        self.current_user = dict(user)

    def logout(self) -> None:
        self.current_user = None

    def role_menu(self) -> str:
        """
        Menu identifier for the current user's role.

        Returns
        -------
        str
            ``LOGIN_MENU`` when nobody is logged in or the role is unknown
        """
        if self.current_user is None:
            return LOGIN_MENU
        return ROLE_MENUS.get(self.role, LOGIN_MENU)

    def display_name(self) -> str:
        if self.current_user is None:
            return ""
        first = self.current_user.get("firstName") or ""
        last = self.current_user.get("lastName") or ""
        return f"{first} {last}".strip() or self.current_user.get("email", "")
