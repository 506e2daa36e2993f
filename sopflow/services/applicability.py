"""
SOPFlow: business-type applicability filter.

A task template applies to an account when its applicability list names the
account's business type and no classification rule excludes it:

    GMB_ONLY   → no WEBSITE tasks (the account has no site)
    RANK_RENT  → no tasks needing the owner's sign-off (no owner in the loop)
"""

import logging

from sopflow.core.exceptions import NoApplicableTasksError, ValidationError
from sopflow.models.enums import BusinessType, TaskCategory
from sopflow.models.sop import TaskTemplate

logger = logging.getLogger(__name__)


_EXCLUSION_RULES = {
    BusinessType.GMB_ONLY: lambda task: task.category == TaskCategory.WEBSITE,
    BusinessType.RANK_RENT: lambda task: bool(task.requires_owner_approval),
}


def coerce_business_type(value: str | BusinessType) -> BusinessType:
    if isinstance(value, BusinessType):
        return value
    try:
        return BusinessType(str(value).upper())
    except ValueError:
        raise ValidationError(
            f"Invalid business type: {value!r}",
            details={"business_type": value},
        ) from None


def is_applicable(task: TaskTemplate, business_type: BusinessType) -> bool:
    """True if ``task`` should be instantiated for an account of ``business_type``."""
    if business_type not in task.business_types:
        return False
    excluded = _EXCLUSION_RULES.get(business_type)
    return not (excluded and excluded(task))


def filter_applicable(
    task_templates: list[TaskTemplate], business_type: str | BusinessType,
) -> list[TaskTemplate]:
    """Order-preserving subset of ``task_templates`` that applies.

    Raises:
        NoApplicableTasksError: nothing is left after filtering.
    """
    business_type = coerce_business_type(business_type)
    applicable = [t for t in task_templates if is_applicable(t, business_type)]
    if not applicable:
        raise NoApplicableTasksError(business_type)

    logger.debug(
        "Applicability: %d/%d tasks kept for %s",
        len(applicable), len(task_templates), business_type.value,
    )
    return applicable
