"""Identity nodes of the trust graph.

Submodules:
    models    -- Identity dataclass, id derivation, attribute validators
    registry  -- IdentityRegistry (create, look up, edit, delete, collect)

All public names are re-exported here so that imports of the form
``from wotscore.core.identity import IdentityRegistry`` work unchanged.
"""

from wotscore.core.identity.models import (
    Identity,
    identity_id_from_public_key,
)
from wotscore.core.identity.registry import IdentityRegistry

__all__ = [
    "Identity",
    "IdentityRegistry",
    "identity_id_from_public_key",
]
