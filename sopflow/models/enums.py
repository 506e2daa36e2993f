"""
Closed enumerations shared by the SOP catalog, account and workflow models.

Values equal names, so the non-native ``db.Enum`` columns store the same
literal the API accepts and returns.
"""

from enum import Enum

from sopflow.models import db


class SOPType(str, Enum):
    NEW_LOCATION = "NEW_LOCATION"
    SUSPENSION_RECOVERY = "SUSPENSION_RECOVERY"
    REBRAND = "REBRAND"
    MAINTENANCE = "MAINTENANCE"


class BusinessType(str, Enum):
    """Account classification used to decide which SOP tasks apply."""
    TRADITIONAL = "TRADITIONAL"
    RANK_RENT = "RANK_RENT"
    GMB_ONLY = "GMB_ONLY"


class TaskCategory(str, Enum):
    GBP_SETUP = "GBP_SETUP"
    GBP_OPTIMIZATION = "GBP_OPTIMIZATION"
    WEBSITE = "WEBSITE"
    CITATIONS = "CITATIONS"
    REVIEWS = "REVIEWS"
    TRACKING = "TRACKING"
    CONTENT = "CONTENT"
    VERIFICATION = "VERIFICATION"
    DOCUMENTATION = "DOCUMENTATION"


class EvidenceType(str, Enum):
    NONE = "NONE"
    URL = "URL"
    SCREENSHOT = "SCREENSHOT"
    TEXT = "TEXT"
    FILE = "FILE"
    CHECKLIST = "CHECKLIST"


class WorkflowStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    BLOCKED = "BLOCKED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


def enum_type(enum_cls, name):
    """Portable enum column type: VARCHAR + named CHECK constraint."""
    return db.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=30,
        validate_strings=True,
    )
