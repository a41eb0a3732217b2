"""
Record formatters.

Plain-text views of user and patient records for the screen body. Output
is plain text because the renderer prints bodies verbatim.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

# User fields never shown on screen
HIDDEN_USER_FIELDS = ("password",)


def _value(value: Any, empty: str = "-") -> str:
    if value is None or value == "" or value == []:
        return empty
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_address(address: Optional[Dict[str, Any]]) -> str:
    if not isinstance(address, dict):
        return "-"
    parts = [address.get(key) for key in ("street", "city", "state", "zipCode", "country")]
    return ", ".join(str(p) for p in parts if p) or "-"


def full_name(record: Dict[str, Any]) -> str:
    first = record.get("firstName") or ""
    last = record.get("lastName") or ""
    return f"{first} {last}".strip() or "-"


def _nhi_sort_key(patient: Dict[str, Any]):
    nhi = str(patient.get("nhi", ""))
    return (0, int(nhi), "") if nhi.isdecimal() else (1, 0, nhi)


def format_patient_record(patient: Dict[str, Any]) -> str:
    """
    Full medical record view.

    Parameters
    ----------
    patient : dict
        Patient record as stored in the patients file

    Returns
    -------
    str
        Multi-line text block
    """
    history = patient.get("medicalHistory")
    if not isinstance(history, dict):
        history = {}
    lines = [
        f"NHI:           {_value(patient.get('nhi'))}",
        f"Name:          {full_name(patient)}",
        f"Date of birth: {_value(patient.get('dateOfBirth'))}",
        f"Gender:        {_value(patient.get('gender'))}",
        f"Phone:         {_value(patient.get('phone'))}",
        f"Email:         {_value(patient.get('email'))}",
        f"Address:       {format_address(patient.get('address'))}",
        f"Assigned GP:   {_value(patient.get('assignedGP'))}",
        "",
        "Medical History",
        f"  Blood type:  {_value(history.get('bloodType'))}",
        f"  Allergies:   {_value(history.get('allergies'), 'None recorded')}",
        f"  Medications: {_value(history.get('currentMedications'), 'None recorded')}",
        f"  Notes:       {_value(history.get('notes'))}",
    ]
    return "\n".join(lines)


def format_patient_summary(patients: Iterable[Dict[str, Any]]) -> str:
    """One line per patient: NHI, name and date of birth, sorted by NHI."""
    rows = sorted(patients, key=_nhi_sort_key)
    if not rows:
        return "No patient records found."
    return "\n".join(
        f"{_value(p.get('nhi')):>8}  {full_name(p)} ({_value(p.get('dateOfBirth'))})"
        for p in rows
    )


def format_user_profile(user: Dict[str, Any]) -> str:
    """Account details with passwords removed."""
    identifier = user.get("nhi") if user.get("role") == "patient" else user.get("id")
    lines = [
        f"Name:          {full_name(user)}",
        f"Email:         {_value(user.get('email'))}",
        f"Role:          {_value(user.get('role'))}",
        f"ID/NHI:        {_value(identifier)}",
        f"Phone:         {_value(user.get('phone'))}",
        f"Date of birth: {_value(user.get('dateOfBirth'))}",
        f"Address:       {format_address(user.get('address'))}",
    ]
    return "\n".join(lines)


def format_user_list(users: Iterable[Dict[str, Any]]) -> str:
    """One line per account: role, email and name."""
    rows: List[Dict[str, Any]] = list(users)
    if not rows:
        return "No users found."
    return "\n".join(
        f"{_value(u.get('role')):<13} {_value(u.get('email')):<32} {full_name(u)}"
        for u in rows
    )


def strip_hidden_fields(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k not in HIDDEN_USER_FIELDS}
