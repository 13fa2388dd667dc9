from __future__ import annotations

from typing import Any

from sqlalchemy.orm import relationship

from crm_domain.platform.security.errors import UnknownMorphTypeError


def morph_many(target: str, name: str, morph_key: str, owner: str, **kwargs: Any) -> Any:
    """Read-only collection of ``target`` rows whose ``<name>_type``/``<name>_id`` pair points at ``owner``."""

    return relationship(
        target,
        primaryjoin=(
            f"and_(foreign({target}.{name}_id) == {owner}.id, "
            f"{target}.{name}_type == '{morph_key}')"
        ),
        viewonly=True,
        **kwargs,
    )


def morph_key_for(instance: object) -> str:
    """Discriminator stored in a ``*_type`` column when pointing at ``instance``."""

    model = instance if isinstance(instance, type) else type(instance)
    key = getattr(model, "__morph_key__", None)
    if key is None:
        raise UnknownMorphTypeError(model.__name__)
    return key
