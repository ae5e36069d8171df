"""Directed, signed trust edges.

Submodules:
    models  -- Trust, TrustChange, TrustListEntry, TrustListImport
    table   -- TrustTable (local edits and remote trust list ingestion)
"""

from wotscore.core.trust.models import (
    MAX_TRUST_VALUE,
    MIN_TRUST_VALUE,
    Trust,
    TrustChange,
    TrustListEntry,
    TrustListImport,
)
from wotscore.core.trust.table import TrustTable

__all__ = [
    "MAX_TRUST_VALUE",
    "MIN_TRUST_VALUE",
    "Trust",
    "TrustChange",
    "TrustListEntry",
    "TrustListImport",
    "TrustTable",
]
