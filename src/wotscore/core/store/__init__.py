"""Trust graph persistence.

The package is split into focused submodules:

- ``rwlock``: ``ReadWriteLock`` giving readers snapshot isolation.
- ``store``: ``TrustGraphStore`` with row tables, indices, journaled
  transactions and JSON persistence.
- ``integrity``: the structural integrity check.

The integrity functions are attached to ``TrustGraphStore`` here so that
``from wotscore.core.store import TrustGraphStore`` presents one API.
"""

from wotscore.core.store.rwlock import ReadWriteLock
from wotscore.core.store.store import TrustGraphStore

from wotscore.core.store import integrity as _integrity

TrustGraphStore.check_integrity = _integrity._check_integrity
TrustGraphStore._check_integrity_unlocked = _integrity._check_integrity_unlocked

__all__ = [
    "ReadWriteLock",
    "TrustGraphStore",
]
