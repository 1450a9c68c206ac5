"""
Intake payload parsing.

Care-request payloads arrive from several form variants. Known fields are
read into typed attributes; everything else stays in ``extras`` so the
snapshot taken at conversion still holds the full submission.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from django.utils.dateparse import parse_date

PAYLOAD_VERSION = 1

UNKNOWN_PATIENT_NAME = 'Unknown Patient'

_KNOWN_KEYS = {
    'version',
    'patient_name',
    'legalName',
    'email',
    'phone',
    'date_of_birth',
    'chief_complaint',
    'injury_date',
    'injury_mechanism',
    'medical_history',
    'current_medications',
    'pain_level',
    'complaints',
}


def _text(value) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return parse_date(str(value))
    except ValueError:
        return None


def _int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class IntakePayload:
    patient_name: str
    email: Optional[str]
    phone: str = ''
    date_of_birth: Optional[date] = None
    chief_complaint: str = ''
    injury_date: Optional[date] = None
    injury_mechanism: str = ''
    medical_history: str = ''
    current_medications: str = ''
    pain_level: Optional[int] = None
    complaints: List[Any] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)
    version: int = PAYLOAD_VERSION

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'IntakePayload':
        data = data if isinstance(data, dict) else {}
        complaints = data.get('complaints')
        email = _text(data.get('email')).lower()
        return cls(
            patient_name=_text(data.get('patient_name')) or _text(data.get('legalName')) or UNKNOWN_PATIENT_NAME,
            email=email or None,
            phone=_text(data.get('phone')),
            date_of_birth=_date(data.get('date_of_birth')),
            chief_complaint=_text(data.get('chief_complaint')),
            injury_date=_date(data.get('injury_date')),
            injury_mechanism=_text(data.get('injury_mechanism')),
            medical_history=_text(data.get('medical_history')),
            current_medications=_text(data.get('current_medications')),
            pain_level=_int(data.get('pain_level')),
            complaints=list(complaints) if isinstance(complaints, list) else [],
            extras={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
            version=_int(data.get('version')) or PAYLOAD_VERSION,
        )

    def first_complaint_region(self) -> Optional[str]:
        """
        Region of the first complaint; first entry wins, no reordering.

        Entries are kept as submitted, so a first entry that is not an
        object has no region even when a later one does.
        """
        if not self.complaints or not isinstance(self.complaints[0], dict):
            return None
        first = self.complaints[0]
        region = first.get('bodyRegion') or first.get('region')
        return _text(region) or None
