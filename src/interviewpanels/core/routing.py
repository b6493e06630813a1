"""Faculty routing for forwarded interview records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

MEDICAL = "Forwarded_To_Medical"
ENGINEERING = "Forwarded_To_Engineering"
SCIENCE = "Forwarded_To_Science"
MANAGEMENT = "Forwarded_To_Management"

FORWARDED_PREFIX = "Forwarded_To_"

DEFAULT_DEPARTMENT_CODES: dict[str, str] = {
    "Department of Orthodontics": "ORTHO",
    "Orthodontics": "ORTHO",
    "Department of Basic Medical Sciences": "BMS",
    "Basic Medical Sciences": "BMS",
    "Department of Conservative Dentistry & Endodontics": "CDE",
    "Conservative Dentistry & Endodontics": "CDE",
    "Department of Oral and Maxillofacial Pathology and Microbiology": "OMPM",
    "Oral and Maxillofacial Pathology and Microbiology": "OMPM",
    "Department of Oral and Maxillofacial Surgery": "OMS",
    "Oral and Maxillofacial Surgery": "OMS",
    "Department of Oral Medicine and Radiology": "OMR",
    "Oral Medicine and Radiology": "OMR",
    "Department of Pediatric and Preventive Dentistry": "PPD",
    "Pediatric and Preventive Dentistry": "PPD",
    "Department of Periodontics and Oral Implantology": "POI",
    "Periodontics and Oral Implantology": "POI",
    "Department of Prosthodontics": "PROSTH",
    "Prosthodontics": "PROSTH",
    "Department of Public Health Dentistry": "PHD",
    "Public Health Dentistry": "PHD",
    "Computer Science and Engineering": "CSE",
    "Computer Science Engineering": "CSE",
    "Mechanical Engineering": "MECH",
    "Electrical and Electronics Engineering": "EEE",
    "Management Studies": "MBA",
}

DEFAULT_DESTINATIONS: dict[str, tuple[str, ...]] = {
    MEDICAL: (
        "BMS", "CDE", "OMPM", "OMS", "OMR", "ORTHO", "PPD", "POI", "PROSTH", "PHD",
        "BIOCHEM_MED", "MICRO_MED", "OT", "MIT", "CP", "RDT", "AT",
    ),
    ENGINEERING: (
        "BME", "ENGBIO", "ENGCHEM", "CIVIL", "CSE", "EEE", "ECE", "ENGENG", "ENGMATH",
        "MECH", "ENGPHYS",
    ),
    SCIENCE: (
        "COMM", "CS_SCI", "BIO_SCI", "BIOCHEM_SCI", "MICRO_SCI", "MATH_SCI", "PHYS_SCI",
        "CHEM_SCI", "EFL", "FASHION", "TAMIL", "VISCOM",
    ),
    MANAGEMENT: ("MBA", "PED"),
}

# faculty-name keyword -> destination, checked in this order
FACULTY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("Engineering", ENGINEERING),
    ("Science", SCIENCE),
    ("Medical", MEDICAL),
    ("Management", MANAGEMENT),
)


def is_forwarded_status(value: str | None) -> bool:
    return bool(value) and value.startswith(FORWARDED_PREFIX)


@dataclass
class RoutingConfig:
    department_codes: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_DEPARTMENT_CODES))
    destinations: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_DESTINATIONS))
    default_destination: str = ENGINEERING


class FacultyRouter:
    """Derive the forwarding destination from a candidate's department."""

    def __init__(self, *, config: RoutingConfig | None = None) -> None:
        self._config = config or RoutingConfig()
        self._logger = structlog.get_logger(__name__)

    def department_code(self, department: str | None) -> str:
        if not department:
            return "UNKNOWN"
        known = self._config.department_codes.get(department.strip())
        if known:
            return known
        letters = re.sub(r"[^A-Z]", "", department.upper())
        return letters[:6] or "UNKNOWN"

    def destination(self, department: str | None, faculty: str | None = None) -> str:
        code = self.department_code(department)
        for destination, codes in self._config.destinations.items():
            if code in codes:
                return destination

        if faculty:
            for keyword, destination in FACULTY_KEYWORDS:
                if keyword in faculty:
                    return destination

        self._logger.warning(
            "routing.default_destination",
            department=department,
            faculty=faculty,
            code=code,
        )
        return self._config.default_destination
