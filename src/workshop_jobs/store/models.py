"""Data models for the records mirrored from the store."""

from dataclasses import dataclass, field, fields
from typing import Optional

JOB_OPEN = "open"
JOB_DONE = "done"

PHOTO_KIND_ID = "id"
PHOTO_KIND_GENERAL = "general"

# Fixed checklist keys, in display order
CHECKLIST_KEYS = [
    ("vehicle_received", "Vehicle received"),
    ("damage_documented", "Damage documented"),
    ("test_drive", "Test drive"),
    ("customer_informed", "Customer informed"),
    ("keys_returned", "Keys returned"),
]


def _known(cls, row: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in dict(row).items() if k in names}


@dataclass
class Job:
    id: Optional[str] = None
    title: str = ""
    customer: str = ""
    vehicle: str = ""
    plate: str = ""
    job_no: str = ""
    notes: str = ""
    status: str = JOB_OPEN
    important: bool = False
    odometer_km: Optional[int] = None
    dropoff_at: Optional[str] = None
    pickup_at: Optional[str] = None
    checklist: dict = field(default_factory=dict)
    created_at: Optional[str] = None
    closed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Job":
        job = cls(**_known(cls, row))
        job.important = bool(job.important)
        if not isinstance(job.checklist, dict):
            job.checklist = {}
        return job

    @property
    def is_done(self) -> bool:
        return self.status == JOB_DONE

    @property
    def display_title(self) -> str:
        return self.title or "(Untitled)"

    def checklist_state(self) -> dict[str, bool]:
        """Every checklist key mapped to a bool; missing keys are False."""
        return {key: bool(self.checklist.get(key)) for key, _ in CHECKLIST_KEYS}


@dataclass
class TimeEntry:
    id: Optional[str] = None
    job_id: str = ""
    worker: str = ""
    task: str = ""
    start_ts: Optional[str] = None
    end_ts: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "TimeEntry":
        return cls(**_known(cls, row))

    @property
    def is_running(self) -> bool:
        return not self.end_ts


@dataclass
class Signature:
    job_id: str = ""
    signer_name: str = ""
    signature_data: str = ""  # data: URL of the embedded JPEG
    signed_at: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Signature":
        return cls(**_known(cls, row))


@dataclass
class Item:
    id: Optional[str] = None
    job_id: str = ""
    item_type: str = "labor"
    description: str = ""
    qty: float = 0.0
    unit_price: float = 0.0
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Item":
        return cls(**_known(cls, row))

    @property
    def line_total(self) -> float:
        return float(self.qty or 0) * float(self.unit_price or 0)


@dataclass
class Photo:
    id: Optional[str] = None
    job_id: str = ""
    path: str = ""
    kind: str = PHOTO_KIND_GENERAL
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Photo":
        return cls(**_known(cls, row))

    @property
    def is_id_document(self) -> bool:
        return self.kind == PHOTO_KIND_ID
