"""Generators for Australian-flavoured synthetic practice data."""

import random
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence, TypeVar

T = TypeVar("T")

FIRST_NAMES = [
    "James", "Emma", "Oliver", "Charlotte", "William", "Olivia", "Jack", "Amelia", "Noah", "Mia",
    "Thomas", "Isla", "Lucas", "Grace", "Henry", "Sophia", "Alexander", "Chloe", "Oscar", "Ava",
]
LAST_NAMES = [
    "Smith", "Jones", "Williams", "Brown", "Wilson", "Taylor", "Johnson", "White", "Martin", "Anderson",
    "Thompson", "Nguyen", "Thomas", "Walker", "Harris", "Lee", "Ryan", "Robinson", "Kelly", "King",
]
SUBURBS = ["Sydney", "Melbourne", "Brisbane", "Perth", "Adelaide", "Gold Coast", "Newcastle", "Canberra", "Wollongong", "Geelong"]
STATES = ["NSW", "VIC", "QLD", "WA", "SA", "TAS", "ACT", "NT"]
STREET_NAMES = ["George", "King", "Queen", "Elizabeth", "Collins", "Bourke", "Swanston", "Pitt", "Market", "Park"]
STREET_TYPES = ["Street", "Road", "Avenue", "Drive", "Place", "Court", "Parade", "Crescent", "Lane", "Way"]
TITLES = ["Mr", "Ms", "Mrs", "Dr"]

# Patients created by generate_test_data use these domains; cleanup_test_data
# matches on them.
EMAIL_DOMAINS = ["gmail.com", "outlook.com", "yahoo.com.au", "bigpond.com", "optusnet.com.au"]

TREATMENT_TYPES = [
    "General Consultation", "Follow-up Visit", "Health Assessment", "Vaccination",
    "Physical Examination", "Blood Test Review", "Prescription Renewal", "Wound Care",
    "Mental Health Consultation", "Preventive Care Check", "Chronic Disease Management",
]
PRODUCT_NAMES = [
    "Standard Consultation", "Extended Consultation", "Brief Consultation",
    "Private Consultation", "Telehealth Consultation", "Health Assessment",
    "Care Plan Development", "Mental Health Plan", "Vaccination Service",
    "Blood Test", "ECG Test", "Spirometry Test", "Wound Dressing", "Injection Administration",
]
PAYMENT_METHODS = ["cash", "credit_card", "eft", "cheque", "other"]


def pick(rng: random.Random, items: Sequence[T]) -> T:
    return items[rng.randrange(len(items))]


def medicare_number(rng: random.Random) -> str:
    return str(rng.randint(1000000000, 9999999999))


def mobile_number(rng: random.Random) -> str:
    return f"04{rng.randint(10000000, 99999999)}"


def email_address(rng: random.Random, first_name: str, last_name: str, domain: Optional[str] = None) -> str:
    return f"{first_name.lower()}.{last_name.lower()}@{domain or pick(rng, EMAIL_DOMAINS)}"


def date_of_birth(rng: random.Random, min_age: int = 18, max_age: int = 80) -> str:
    year = datetime.now().year - rng.randint(min_age, max_age)
    return f"{year}-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}"


def address(rng: random.Random) -> dict[str, str]:
    return {
        "line_1": f"{rng.randint(1, 200)} {pick(rng, STREET_NAMES)} {pick(rng, STREET_TYPES)}",
        "suburb": pick(rng, SUBURBS),
        "state": pick(rng, STATES),
        "postcode": str(rng.randint(1000, 9999)),
        "country": "Australia",
    }


def patient(rng: random.Random, domain: Optional[str] = None) -> dict[str, Any]:
    """A complete patient payload ready for ``create_patient``."""
    first_name = pick(rng, FIRST_NAMES)
    last_name = pick(rng, LAST_NAMES)
    return {
        "first_name": first_name,
        "last_name": last_name,
        "title": pick(rng, TITLES),
        "date_of_birth": date_of_birth(rng),
        "sex": pick(rng, ["Male", "Female", "Other"]),
        "email": email_address(rng, first_name, last_name, domain),
        "phone_numbers": [{"number": mobile_number(rng), "type": "Mobile"}],
        "address": address(rng),
        "medicare_number": medicare_number(rng),
        "medicare_reference_number": str(rng.randint(1, 9)),
    }


def business_hours_slot(rng: random.Random, day: datetime) -> datetime:
    """Somewhere between 9:00 and 16:45 on ``day``, on a quarter hour."""
    return day.replace(hour=rng.randint(9, 16), minute=rng.randrange(0, 60, 15), second=0, microsecond=0)


def future_slot(rng: random.Random, max_days: int, skip_weekends: bool = True) -> datetime:
    day = datetime.now().astimezone() + timedelta(days=rng.randint(1, max_days))
    if skip_weekends:
        while day.weekday() >= 5:
            day += timedelta(days=1)
    return business_hours_slot(rng, day)


def past_slot(rng: random.Random, max_days: int) -> datetime:
    day = datetime.now().astimezone() - timedelta(days=rng.randint(1, max_days))
    return business_hours_slot(rng, day)


def full_name(record: dict[str, Any]) -> str:
    return f"{record.get('first_name', '')} {record.get('last_name', '')}".strip()
