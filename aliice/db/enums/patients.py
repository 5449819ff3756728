"""Patient-related enums."""

from enum import Enum


class PatientSource(str, Enum):
    """Where a patient record originated."""

    MANUAL = "manual"
    EVENT = "event"
    META = "meta"  # Meta lead ads
    GOOGLE = "google"  # Google lead forms
