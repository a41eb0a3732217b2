"""
Demo data generation.

Writes a small, reproducible set of users and patient records: three
default accounts (admin, professional, patient) plus random patients made
up with Faker. Passing a seed makes the output repeatable.
"""

from __future__ import annotations
import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from faker import Faker

from medrecords.core.stores import PATIENT_NHI_RANGE, PatientStore, UserStore, generate_unique_number

logger = logging.getLogger(__name__)

DEFAULT_GP_ID = 22333

DEFAULT_USERS: List[Dict[str, Any]] = [
    {
        "nhi": None,
        "id": 12345,
        "email": "admin@email.com",
        "phone": "000-000-0000",
        "address": {"street": "123 Admin Street", "city": "City", "state": "State", "zipCode": "8008"},
        "password": "admin123",
        "firstName": "System",
        "lastName": "Administrator",
        "gender": "Other",
        "dateOfBirth": "0001-01-01",
        "role": "admin",
    },
    {
        "nhi": None,
        "id": DEFAULT_GP_ID,
        "email": "pro@email.com",
        "phone": "000-000-0000",
        "address": {"street": "123 Pro Drive", "city": "City", "state": "State", "zipCode": "8008"},
        "password": "pro123",
        "firstName": "Mista.",
        "lastName": "Miyagi",
        "gender": "Male",
        "dateOfBirth": "1984-06-22",
        "role": "professional",
    },
    {
        "nhi": 100001,
        "id": None,
        "email": "patient@email.com",
        "phone": "021-555-0003",
        "address": {"street": "888 Dojo Lane", "city": "Newark", "state": "New Jersey", "zipCode": "8008"},
        "password": "patient123",
        "firstName": "Daniel",
        "lastName": "LaRusso",
        "gender": "Male",
        "dateOfBirth": "1984-06-22",
        "role": "patient",
    },
]

DEFAULT_PATIENT_RECORD: Dict[str, Any] = {
    "nhi": 100001,
    "firstName": "Daniel",
    "lastName": "LaRusso",
    "dateOfBirth": "1984-06-22",
    "gender": "Male",
    "phone": "021-555-0003",
    "email": "patient@email.com",
    "address": {
        "street": "888 Dojo Lane",
        "city": "Newark",
        "state": "New Jersey",
        "zipCode": "8008",
        "country": "USA",
    },
    "medicalHistory": {
        "allergies": ["Cobra Venom"],
        "currentMedications": ["Ibuprofen"],
        "bloodType": "O+",
        "notes": "Recovering from a knee injury.",
    },
    "assignedGP": DEFAULT_GP_ID,
}

# Medical history pools; person and address details come from Faker
GENDERS = ["Female", "Male", "Other"]
ALLERGIES = ["None", "Shellfish", "Peanuts", "Latex", "Dairy"]
MEDICATIONS = ["None", "Aspirin", "Vitamin D", "Multivitamin", "Paracetamol"]
BLOOD_TYPES = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


@dataclass
class DemoSummary:
    """What was written by ``write_demo_data``."""

    users: int
    patients: int
    users_file: Path
    patients_file: Path


def make_faker(seed: Optional[int] = None) -> Faker:
    """Faker instance with its own seeded random state."""
    fake = Faker()
    if seed is not None:
        fake.seed_instance(seed)
    return fake


def _email_part(name: str) -> str:
    return "".join(c for c in name.lower() if c.isascii() and c.isalnum())


def random_address(fake: Faker) -> Dict[str, Any]:
    return {
        "street": fake.street_address(),
        "city": fake.city(),
        "state": fake.state(),
        "zipCode": fake.postcode(),
    }


def random_person(fake: Faker) -> Dict[str, Any]:
    first = fake.first_name()
    last = fake.last_name()
    return {
        "firstName": first,
        "lastName": last,
        "dateOfBirth": fake.date_of_birth(minimum_age=0, maximum_age=100).isoformat(),
        "gender": fake.random_element(GENDERS),
        "phone": fake.phone_number(),
        "email": f"{_email_part(first)}.{_email_part(last)}{fake.random_int(1, 999)}@{fake.free_email_domain()}",
        "password": fake.password(length=12),
    }


def generate_random_patients(
    count: int,
    fake: Faker,
    taken_nhis: Optional[set] = None,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Generate ``count`` patient users with matching patient records.

    Returns
    -------
    tuple[list[dict], list[dict]]
        (user accounts, patient records), in the same order
    """
    taken = set(taken_nhis or ())
    users, patients = [], []
    emails = set()

    for _ in range(count):
        person = random_person(fake)
        while person["email"] in emails:
            person = random_person(fake)
        emails.add(person["email"])

        nhi = generate_unique_number(*PATIENT_NHI_RANGE, taken, fake.random)
        taken.add(nhi)

        users.append({"nhi": nhi, "id": None, **person, "address": random_address(fake), "role": "patient"})

        record = {k: v for k, v in person.items() if k != "password"}
        record["nhi"] = nhi
        record["address"] = {**random_address(fake), "country": fake.country()}
        record["medicalHistory"] = {
            "allergies": fake.random.sample(ALLERGIES, fake.random_int(1, 3)),
            "currentMedications": fake.random.sample(MEDICATIONS, fake.random_int(0, 3)),
            "bloodType": fake.random_element(BLOOD_TYPES),
            "notes": fake.sentence(),
        }
        record["assignedGP"] = DEFAULT_GP_ID
        patients.append(record)

    return users, patients


def write_demo_data(
    users_file: Path,
    patients_file: Path,
    count: int = 10,
    seed: Optional[int] = None,
) -> DemoSummary:
    """
    Replace both data files with demo data.

    Parameters
    ----------
    users_file, patients_file : Path
        Target files (overwritten)
    count : int
        Number of random patients
    seed : int, optional
        Seed for reproducible output

    Raises
    ------
    OSError
        If either file cannot be written
    """
    random_users, random_patients = generate_random_patients(count, make_faker(seed), {100001})

    all_users = copy.deepcopy(DEFAULT_USERS) + random_users
    all_patients = [copy.deepcopy(DEFAULT_PATIENT_RECORD)] + random_patients

    if not UserStore(users_file).save_all(all_users):
        raise OSError(f"Could not write {users_file}")
    if not PatientStore(patients_file).save_all(all_patients):
        raise OSError(f"Could not write {patients_file}")

    logger.info(f"Wrote {len(all_users)} users and {len(all_patients)} patients")
    return DemoSummary(len(all_users), len(all_patients), Path(users_file), Path(patients_file))
