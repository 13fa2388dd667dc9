from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import (
    AuthorizationError,
    InvalidStateTransitionError,
    PersistenceError,
    ReadOnlyModelError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    TenantScopeError,
    UniqueConstraintViolation,
    UnknownMorphTypeError,
)
from crm_domain.platform.security.repository import BaseRepository, ReadOnlyRepository, translate_integrity_error
from crm_domain.platform.security.tenancy import (
    apply_tenant_filter,
    require_privileged,
    row_in_scope,
    validate_tenant_write,
)

__all__ = [
    "TenantContext",
    "AuthorizationError",
    "InvalidStateTransitionError",
    "PersistenceError",
    "ReadOnlyModelError",
    "RecordNotFoundError",
    "ReferentialIntegrityError",
    "TenantScopeError",
    "UniqueConstraintViolation",
    "UnknownMorphTypeError",
    "BaseRepository",
    "ReadOnlyRepository",
    "translate_integrity_error",
    "apply_tenant_filter",
    "require_privileged",
    "row_in_scope",
    "validate_tenant_write",
]
