"""Client-side mirror of the row store's ownership policy.

This is a fast path for the UI (hide or disable controls, fail before a
round trip). The row store enforces the same rule independently and remains
the only authority; nothing here should be treated as a security check.
"""

from foodmap.models import Identity, Restaurant, Review


def owner_id(entity: Restaurant | Review) -> str | None:
    """Return the identity id stored on an entity at creation time."""
    if isinstance(entity, Review):
        return entity.user_id
    if isinstance(entity, Restaurant):
        return entity.created_by
    msg = f"Unsupported entity type: {type(entity).__name__}"
    raise TypeError(msg)


def can_mutate(entity: Restaurant | Review, identity: Identity | None) -> bool:
    """Check whether ``identity`` may edit or delete ``entity``."""
    if identity is None:
        return False
    owner = owner_id(entity)
    return owner is not None and owner == identity.id
