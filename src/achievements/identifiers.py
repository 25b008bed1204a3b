"""Deterministic store identifiers for catalog definitions

Only the seeding path assigns these. Lookups always go through the identity
map, so rows created by other seed scripts keep their own identifiers.
"""

from uuid import UUID, uuid5

from src.config import ACHIEVEMENT_ID_NAMESPACE

ID_SCHEME_VERSION = 1


def achievement_id_v1(key: str, namespace: str = ACHIEVEMENT_ID_NAMESPACE) -> str:
    """
    Version 1 identifier: uuid5(namespace, "achievement:v1:<key>")

    Changing the namespace or the name layout changes every seeded id, so a
    new layout must ship as a new versioned function.
    """
    return str(uuid5(UUID(namespace), f"achievement:v{ID_SCHEME_VERSION}:{key}"))
