"""Every Ride Challenge tracker.

Tracks a one-day "ride every attraction" challenge: the single active run,
the history of finished runs, resuming a recently ended run, and the rides
excluded from a run.

Modules:
    - challenges: time policy, stores, lifecycle engine and REST API
    - storage: memory, JSON file and Redis slot backends
    - shared: logging, datetime helpers and base schemas
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
