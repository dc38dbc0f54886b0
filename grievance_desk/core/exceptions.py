"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register one set of handlers
(``grievance_desk.utils.errors.register_error_handlers``) and get consistent
HTTP status codes and machine-readable error codes everywhere.

Every workflow failure carries enough context in ``details`` (which step,
which predecessor, which level) for a client to show an actionable message.
Sequencing and completion errors are raised before anything is flushed, so
the caller may correct the request and retry.

Usage:
    from grievance_desk.core.exceptions import TaskNotFoundError, SequenceViolationError

    raise TaskNotFoundError(task_id, tenant_id=ctx.tenant_id)
    raise SequenceViolationError(step, blocking_step)
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's scope.

    Used for BOTH genuinely missing records AND cross-tenant access attempts:
    a 403 would confirm the resource exists in another office; a 404 does not.

    Args:
        resource: Human-readable model/entity name (e.g. "Task", "Category").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
        tenant_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class CategoryNotFoundError(NotFoundError):
    def __init__(self, slug: str, tenant_id: int | None = None) -> None:
        super().__init__("Category", slug, tenant_id)


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: int, tenant_id: int | None = None) -> None:
        super().__init__("Task", task_id, tenant_id)


class StepNotFoundError(NotFoundError):
    def __init__(self, step_id: int, task_id: int | None = None) -> None:
        self.task_id = task_id
        super().__init__("TaskStep", step_id)


class ValidationError(Exception):
    """Raised when input fails validation before any state change.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
        status: HTTP status the blueprint should use — 400 for malformed
                input at the boundary, 422 for business-rule violations.
    """

    def __init__(self, message: str, details: dict | None = None, status: int = 400) -> None:
        self.details = details or {}
        self.status = status
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate or break a reference.

    Maps to HTTP 409.
    """

    code = "ERR_CONFLICT_DUPLICATE"

    def __init__(self, resource: str, field: str, value: str | None = None,
                 message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        self.details = {"resource": resource, "field": field, "value": value}
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class TemplateConflictError(ConflictError):
    """A workflow template already exists for this (category, scope) pair."""

    def __init__(self, category_id: int, scope: str) -> None:
        super().__init__(
            "WorkflowTemplate",
            "subcategory",
            scope,
            message=f"A workflow already exists for category {category_id} and scope {scope!r}",
        )
        self.details["category_id"] = category_id


class CategoryInUseError(ConflictError):
    code = "ERR_CONFLICT_STATE"

    def __init__(self, slug: str, task_count: int) -> None:
        super().__init__(
            "Category",
            "value",
            slug,
            message=f"Category {slug!r} is referenced by {task_count} task(s) and cannot be deleted",
        )
        self.details["task_count"] = task_count


class PermissionDeniedError(Exception):
    """Caller lacks the authority for this action. Maps to HTTP 403."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConcurrentModificationError(Exception):
    """Optimistic-lock failure: another writer updated the record first.

    Retryable. Maps to HTTP 409.
    """

    code = "ERR_CONCURRENT_MODIFICATION"

    def __init__(self, resource: str, resource_id: int) -> None:
        self.details = {"resource": resource, "id": resource_id}
        super().__init__(f"{resource} id={resource_id} was modified concurrently; retry the request")


# ── Workflow state errors (HTTP 409) ─────────────────────────────────────────


class WorkflowStateError(Exception):
    """Base for recoverable state-machine rejections."""

    code = "ERR_CONFLICT_STATE"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class SequenceViolationError(WorkflowStateError):
    """A required predecessor step is still pending."""

    code = "ERR_SEQUENCE_VIOLATION"

    def __init__(self, step, blocking_step) -> None:
        self.step_id = step.id
        self.blocking_step_id = blocking_step.id
        super().__init__(
            f"Cannot complete step {step.sequence}. Previous required step "
            f"{blocking_step.sequence} \"{blocking_step.title}\" must be completed first.",
            details={
                "step_id": step.id,
                "sequence": step.sequence,
                "required_step": {
                    "id": blocking_step.id,
                    "sequence": blocking_step.sequence,
                    "title": blocking_step.title,
                },
            },
        )


class AlreadyCompletedError(WorkflowStateError):
    """The step (or the whole task) is already completed."""

    code = "ERR_ALREADY_COMPLETED"


class ApprovalChainExhaustedError(WorkflowStateError):
    """The approval chain has no pending decision at the requested level."""

    code = "ERR_APPROVAL_CHAIN_EXHAUSTED"
