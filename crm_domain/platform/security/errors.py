from __future__ import annotations


class PersistenceError(Exception):
    """Base error for persistence-layer contract violations."""


class RecordNotFoundError(PersistenceError):
    """Raised when a row does not exist or lies outside the caller's tenant."""

    def __init__(self, resource: str, record_id: object) -> None:
        self.resource = resource
        self.record_id = record_id
        super().__init__(f"{resource} '{record_id}' not found")


class ReferentialIntegrityError(PersistenceError):
    """Raised when a foreign key or polymorphic reference names a missing target."""


class UnknownMorphTypeError(PersistenceError):
    """Raised when a polymorphic discriminator does not name a registered entity type."""

    def __init__(self, morph_type: object) -> None:
        self.morph_type = morph_type
        super().__init__(f"Unknown polymorphic type '{morph_type}'")


class ReadOnlyModelError(PersistenceError):
    """Raised when a write targets a read-only projection or an append-only log."""

    def __init__(self, resource: str, operation: str) -> None:
        self.resource = resource
        self.operation = operation
        super().__init__(f"'{resource}' is read-only; {operation} rejected")


class UniqueConstraintViolation(PersistenceError):
    def __init__(self, resource: str, fields: list[str] | tuple[str, ...]) -> None:
        self.resource = resource
        self.fields = list(fields)
        super().__init__(f"Duplicate value for resource '{resource}': {', '.join(self.fields)}")


class InvalidStateTransitionError(PersistenceError):
    """Raised when a lifecycle transition is not allowed from the current state."""


class AuthorizationError(PersistenceError):
    """Base authorization error for privileged or scope-restricted paths."""


class TenantScopeError(AuthorizationError):
    """Raised when a write payload names a tenant other than the caller's."""

    def __init__(self, resource: str, team_id: object) -> None:
        self.resource = resource
        self.team_id = team_id
        super().__init__(f"Out-of-scope team_id for resource '{resource}'")
