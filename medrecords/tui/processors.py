"""
Form processors and record handlers.

Decorator-based registration keyed by node id. The engine looks handlers
up here after a form has been completed or a record node is dispatched.

Example
-------
>>> @form_processor("FEEDBACK_FORM")
... def process_feedback(engine, data):
...     engine.show_message("Thanks for your feedback!")
...     return True
"""

from __future__ import annotations
import functools
import logging
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional

from medrecords.core.formatters import (
    format_patient_record,
    format_patient_summary,
    format_user_list,
    format_user_profile,
    full_name,
    strip_hidden_fields,
)
from medrecords.tui.graph import (
    SEARCH_PATIENT_FORM,
    USER_CREATE_FORM,
    USER_LOGIN_FORM,
    VIEW_ALL_RECORDS,
    VIEW_ALL_USERS,
    VIEW_LOGS,
    VIEW_MY_PATIENTS,
    VIEW_MY_PROFILE,
    VIEW_MY_RECORD,
    RecordNode,
)
from medrecords.tui.logging_config import read_recent_logs

if TYPE_CHECKING:
    from medrecords.tui.engine import FlowEngine

logger = logging.getLogger(__name__)

FormProcessor = Callable[["FlowEngine", Dict[str, str]], bool]
RecordHandler = Callable[["FlowEngine", RecordNode], None]

# Global registries
_FORM_PROCESSORS: Dict[str, FormProcessor] = {}
_RECORD_HANDLERS: Dict[str, RecordHandler] = {}

STAFF_ROLES = ("professional", "admin")
LOG_LINES_SHOWN = 20


def form_processor(form_id: str):
    """
    Register a function as the processor for a form.

    The processor receives the engine and the collected answers and
    returns True on success.
    """
    def decorator(func: FormProcessor) -> FormProcessor:
        _FORM_PROCESSORS[form_id] = func
        return func
    return decorator


def record_handler(record_id: str, roles: Optional[Iterable[str]] = None):
    """
    Register a function as the handler for a record node.

    Parameters
    ----------
    record_id : str
        Record node identifier
    roles : Iterable[str], optional
        Roles allowed to open the record. Anyone logged in when omitted.
    """
    allowed = tuple(roles) if roles is not None else None

    def decorator(func: RecordHandler) -> RecordHandler:
        @functools.wraps(func)
        def guarded(engine: FlowEngine, node: RecordNode) -> None:
            role = engine.session.role
            if role is None or (allowed is not None and role not in allowed):
                logger.warning(f"Access to {node.id} denied for role {role!r}")
                engine.show_message("Access denied!")
                return
            func(engine, node)

        _RECORD_HANDLERS[record_id] = guarded
        return guarded
    return decorator


def acknowledge_form(engine: FlowEngine, data: Dict[str, str]) -> bool:
    """Fallback for forms with no registered processor."""
    engine.show_message("Form submitted!")
    return True


def get_form_processor(form_id: str) -> FormProcessor:
    return _FORM_PROCESSORS.get(form_id, acknowledge_form)


def get_record_handler(record_id: str) -> Optional[RecordHandler]:
    return _RECORD_HANDLERS.get(record_id)


# ═══════════════════════════════════════════════════════════════════
# Forms
# ═══════════════════════════════════════════════════════════════════

@form_processor(USER_LOGIN_FORM)
def process_login(engine: FlowEngine, data: Dict[str, str]) -> bool:
    email = data.get("email", "")
    user = engine.users.find_by_email(email)

    # Plain-text comparison, matching the stored data format
    if user is None or user.get("password") != data.get("password"):
        logger.info(f"Failed login attempt for {email}")
        engine.show_message("Invalid email or password!")
        return False

    engine.session.login(strip_hidden_fields(user))
    logger.info(f"User {email} logged in as {user.get('role')}")
    engine.show_message(f"Login successful! Welcome, {engine.session.display_name()}.")
    return True


@form_processor(USER_CREATE_FORM)
def process_create_account(engine: FlowEngine, data: Dict[str, str]) -> bool:
    payload = {key: value for key, value in data.items() if key != "confirmPassword"}
    result = engine.users.create(payload, role="patient", reserved_nhis=engine.patients.nhis())
    if not result.success:
        logger.info(f"Account creation failed for {payload.get('email')}: {result.message}")
        engine.show_message(result.message)
        return False

    # Every patient account owns exactly one matching record
    if not engine.patients.create_for_user(result.user):
        logger.error(f"Could not open a medical record for NHI {result.user.get('nhi')}; removing account")
        engine.users.delete_by_email(result.user["email"])
        engine.show_message("Failed to create your medical record! Please try again.")
        return False

    engine.show_message(f"{result.message} Your NHI is {result.user.get('nhi')}. Please log in.")
    return True


@form_processor(SEARCH_PATIENT_FORM)
def process_patient_search(engine: FlowEngine, data: Dict[str, str]) -> bool:
    if engine.session.role not in STAFF_ROLES:
        engine.show_message("Access denied!")
        return False

    nhi = data.get("nhi", "")
    patient = engine.patients.find_by_nhi(nhi)
    if patient is None:
        logger.info(f"Patient search found nothing for NHI {nhi}")
        engine.show_message(f"No patient found with NHI {nhi}!")
        return False

    engine.show_document(f"Patient Record: {full_name(patient)}", format_patient_record(patient))
    return True


# ═══════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════

@record_handler(VIEW_MY_RECORD, roles=("patient",))
def show_my_record(engine: FlowEngine, node: RecordNode) -> None:
    patient = engine.patients.find_by_nhi(engine.session.current_user.get("nhi"))
    if patient is None:
        engine.show_message("No medical record found for your account!")
        return
    engine.show_document(node.name, format_patient_record(patient))


@record_handler(VIEW_MY_PROFILE)
def show_my_profile(engine: FlowEngine, node: RecordNode) -> None:
    engine.show_document(node.name, format_user_profile(engine.session.current_user))


@record_handler(VIEW_MY_PATIENTS, roles=("professional",))
def show_my_patients(engine: FlowEngine, node: RecordNode) -> None:
    patients = engine.patients.find_by_gp(engine.session.current_user.get("id"))
    engine.show_document(f"{node.name} ({len(patients)})", format_patient_summary(patients))


@record_handler(VIEW_ALL_RECORDS, roles=STAFF_ROLES)
def show_all_records(engine: FlowEngine, node: RecordNode) -> None:
    patients = engine.patients.load_all()
    engine.show_document(f"{node.name} ({len(patients)})", format_patient_summary(patients))


@record_handler(VIEW_ALL_USERS, roles=("admin",))
def show_all_users(engine: FlowEngine, node: RecordNode) -> None:
    users = engine.users.load_all()
    engine.show_document(f"{node.name} ({len(users)})", format_user_list(users))


@record_handler(VIEW_LOGS, roles=("admin",))
def show_logs(engine: FlowEngine, node: RecordNode) -> None:
    lines = read_recent_logs(engine.log_dir, max_lines=LOG_LINES_SHOWN)
    engine.show_document(node.name, "\n".join(lines))
