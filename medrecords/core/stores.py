"""
JSON File Stores.

User and patient records live in flat UTF-8 JSON arrays. Every read or write
failure is logged and turned into an empty result or ``False`` so callers
never have to handle file errors.
"""

from __future__ import annotations
import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

PATIENT_NHI_RANGE = (200000, 999999)
PROFESSIONAL_ID_RANGE = (10000, 99999)


def initialise_data_files(paths: Iterable[Path]) -> List[Path]:
    """
    Create an empty JSON array file for every path that does not exist.

    Existing files are never touched.

    Parameters
    ----------
    paths : Iterable[Path]
        Data files to ensure

    Returns
    -------
    list[Path]
        Files that were created
    """
    created = []
    for path in paths:
        path = Path(path)
        if path.exists():
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("[]", encoding="utf-8")
        logger.info(f"Created empty data file {path}")
        created.append(path)
    return created


def generate_unique_number(low: int, high: int, taken: Set[int], rng: random.Random) -> int:
    """
    Draw a number in ``[low, high]`` that is not in ``taken``.

    Raises
    ------
    ValueError
        If every number in the range is already taken
    """
    if len({n for n in taken if low <= n <= high}) > high - low:
        raise ValueError(f"No free numbers left in range {low}-{high}")
    while True:
        candidate = rng.randint(low, high)
        if candidate not in taken:
            return candidate


@dataclass
class StoreResult:
    """Outcome of a store write operation."""

    success: bool
    message: str
    user: Optional[Dict[str, Any]] = None


class JsonStore:
    """
    List-of-objects store backed by one JSON file.

    Parameters
    ----------
    path : Path
        JSON file holding the records
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_all(self) -> List[Dict[str, Any]]:
        """Read every record; ``[]`` if the file is missing or unreadable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.warning(f"Data file not found: {self.path}")
            return []
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.path}: {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"Expected a JSON array in {self.path}, got {type(data).__name__}")
            return []
        return [record for record in data if isinstance(record, dict)]

    def save_all(self, records: List[Dict[str, Any]]) -> bool:
        """Replace the file contents with ``records``. Returns False on failure."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(list(records), f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {self.path}: {e}")
            return False
        return True


class UserStore(JsonStore):
    """User accounts (all roles)."""

    def __init__(self, path: Path, rng: Optional[random.Random] = None):
        super().__init__(path)
        self.rng = rng or random.Random()

    def find_by_email(self, email: Any) -> Optional[Dict[str, Any]]:
        """Case-insensitive exact email match."""
        if not isinstance(email, str) or not email.strip():
            return None
        wanted = email.strip().lower()
        for user in self.load_all():
            if str(user.get("email", "")).strip().lower() == wanted:
                return user
        return None

    def find_by_id(self, user_id: Any) -> Optional[Dict[str, Any]]:
        for user in self.load_all():
            if user.get("id") is not None and str(user.get("id")) == str(user_id):
                return user
        return None

    def create(
        self,
        data: Dict[str, Any],
        role: Optional[str] = None,
        reserved_nhis: Iterable[int] = (),
    ) -> StoreResult:
        """
        Register a new user.

        Patients get a unique NHI, professionals a unique ID, admins neither.

        Parameters
        ----------
        data : dict
            User fields (``email``, ``password``, names, ...)
        role : str, optional
            Role to assign; defaults to ``data["role"]`` or ``"patient"``
        reserved_nhis : Iterable[int]
            NHIs in use outside this store, e.g. by existing patient records

        Returns
        -------
        StoreResult
            ``success`` and a user-facing ``message``; ``user`` on success
        """
        users = self.load_all()
        email = str(data.get("email", "")).strip()
        if any(str(u.get("email", "")).strip().lower() == email.lower() for u in users):
            return StoreResult(False, "An account with that email already exists!")

        role = role or data.get("role") or "patient"
        user = dict(data)
        user["email"] = email
        user["role"] = role
        user["nhi"] = None
        user["id"] = None

        if role == "patient":
            taken = {u["nhi"] for u in users if isinstance(u.get("nhi"), int)}
            taken.update(reserved_nhis)
            user["nhi"] = generate_unique_number(*PATIENT_NHI_RANGE, taken, self.rng)
        elif role == "professional":
            taken = {u["id"] for u in users if isinstance(u.get("id"), int)}
            user["id"] = generate_unique_number(*PROFESSIONAL_ID_RANGE, taken, self.rng)

        users.append(user)
        if not self.save_all(users):
            return StoreResult(False, "Failed to save user data!")

        logger.info(f"Created {role} account for {email}")
        return StoreResult(True, "Account created successfully!", user)

    def delete_by_email(self, email: str) -> bool:
        """Remove the account with ``email``. Returns False if absent or on save failure."""
        users = self.load_all()
        wanted = str(email).strip().lower()
        kept = [u for u in users if str(u.get("email", "")).strip().lower() != wanted]
        if len(kept) == len(users):
            return False
        return self.save_all(kept)


class PatientStore(JsonStore):
    """Patient medical records, keyed by NHI."""

    def find_by_nhi(self, nhi: Any) -> Optional[Dict[str, Any]]:
        """Match an NHI given as int or numeric string."""
        try:
            wanted = int(str(nhi).strip())
        except (TypeError, ValueError):
            return None
        for patient in self.load_all():
            try:
                if int(patient.get("nhi")) == wanted:
                    return patient
            except (TypeError, ValueError):
                continue
        return None

    def nhis(self) -> Set[int]:
        """Every NHI held by a patient record."""
        taken = set()
        for patient in self.load_all():
            try:
                taken.add(int(patient.get("nhi")))
            except (TypeError, ValueError):
                continue
        return taken

    def find_by_gp(self, professional_id: Any) -> List[Dict[str, Any]]:
        """Patients whose ``assignedGP`` is ``professional_id``."""
        if professional_id is None:
            return []
        return [
            p for p in self.load_all()
            if p.get("assignedGP") is not None and str(p.get("assignedGP")) == str(professional_id)
        ]

    def create_for_user(self, user: Dict[str, Any]) -> bool:
        """Open an empty medical record for a newly registered patient."""
        if user.get("nhi") is None or self.find_by_nhi(user["nhi"]) is not None:
            return False
        patients = self.load_all()
        patients.append({
            "nhi": user["nhi"],
            "firstName": user.get("firstName"),
            "lastName": user.get("lastName"),
            "email": user.get("email"),
            "medicalHistory": {
                "allergies": [],
                "currentMedications": [],
                "bloodType": None,
                "notes": "",
            },
            "assignedGP": None,
        })
        return self.save_all(patients)
