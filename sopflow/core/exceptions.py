"""
Platform-wide exception hierarchy.

Services raise these; blueprints register one handler against
``PlatformError`` and get a consistent JSON body (``error`` + machine-stable
``code`` + optional ``details``) and HTTP status everywhere.

Usage:
    from sopflow.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="WorkflowInstance", resource_id=42)
    raise ValidationError("status is invalid", details={"status": "DONE"})

Persistence failures (SQLAlchemyError) are deliberately NOT part of this
hierarchy: they are infrastructure errors and surface as a generic 500.
"""

from sopflow.utils.errors import E


class PlatformError(Exception):
    """Base for caller-visible domain errors.

    Subclasses set ``code`` (an ``E.*`` constant) and ``status``.
    """

    code = E.INTERNAL
    status = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(PlatformError):
    """Raised when a requested template, workflow, task or location does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "WorkflowInstance").
        resource_id: The PK that was looked up.
    """

    code = E.NOT_FOUND
    status = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(PlatformError):
    """Raised when input is missing or not one of the accepted literals.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
        code: Override for the default ERR_VALIDATION_INVALID.
    """

    code = E.VALIDATION_INVALID

    def __init__(self, message: str, details: dict | None = None, code: str | None = None) -> None:
        if code:
            self.code = code
        super().__init__(message, details)


class TemplateNotFoundError(ValidationError):
    """The logical template key maps to no SOPType."""

    code = E.TEMPLATE_NOT_FOUND

    def __init__(self, template_key) -> None:
        self.template_key = template_key
        super().__init__(
            f"Invalid SOP template ID: {template_key!r}",
            details={"sop_template_id": template_key},
        )


class TemplateDefinitionMissingError(PlatformError):
    """The SOPType is valid but the catalog has no built-in definition for it."""

    code = E.TEMPLATE_DEFINITION_MISSING
    status = 500

    def __init__(self, sop_type) -> None:
        self.sop_type = sop_type
        super().__init__(f"SOP template definition not found for {getattr(sop_type, 'value', sop_type)}")


class NoApplicableTasksError(PlatformError):
    """Applicability filtering left nothing to do for this business type."""

    code = E.NO_APPLICABLE_TASKS

    def __init__(self, business_type) -> None:
        self.business_type = business_type
        value = getattr(business_type, "value", business_type)
        super().__init__(
            f"No applicable tasks for business type {value}",
            details={"business_type": value},
        )


class IllegalTransitionError(PlatformError):
    """A named workflow action is not permitted from the current state."""

    code = E.ILLEGAL_TRANSITION

    def __init__(self, action: str, current, reason: str | None = None) -> None:
        self.action = action
        self.current_status = current
        value = getattr(current, "value", current)
        msg = f"Cannot {action} workflow in {value} status"
        if reason:
            msg += f". {reason}"
        super().__init__(msg, details={"action": action, "current_status": value})


class InvalidStatusTransitionError(PlatformError):
    """A direct status write is not in the transition table."""

    code = E.INVALID_STATUS_TRANSITION

    def __init__(self, current, requested, entity: str = "workflow") -> None:
        self.current_status = current
        self.requested_status = requested
        cur = getattr(current, "value", current)
        req = getattr(requested, "value", requested)
        super().__init__(
            f"Invalid {entity} status transition from {cur} to {req}",
            details={"current_status": cur, "requested_status": req},
        )


class IncompleteTasksRemainError(PlatformError):
    """Completion guard failed; ``remaining`` tasks are not COMPLETED/SKIPPED."""

    code = E.INCOMPLETE_TASKS

    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        super().__init__(
            f"Cannot complete workflow. {remaining} task(s) still pending.",
            details={"incomplete_tasks": remaining},
        )
