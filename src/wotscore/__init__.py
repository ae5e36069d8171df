"""wotscore: Incremental score computation for a decentralized web of trust."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
