"""Process-wide random seed.

The seed is drawn once at startup from the wall clock and handed to the
orchestrator explicitly.  Clustering and color allocation derive their
randomness from it, so results are reproducible within one process.
"""

from __future__ import annotations

import time

# scikit-learn rejects random_state values outside [0, 2**32 - 1]
_SEED_MODULUS = 2**32


def new_seed() -> int:
    """Return a fresh seed derived from the current time in nanoseconds."""
    return time.time_ns() % _SEED_MODULUS
