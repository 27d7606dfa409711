"""Engine package for suitetree.

Wraps the immutable registry in a state machine with atomic snapshot
publication (`Engine`), and walks a published registry on demand
(`run_registry`).
"""

from .driver import RunHooks, run_registry
from .engine import Engine, EngineState, Phase

__all__ = [
    "Engine",
    "EngineState",
    "Phase",
    "RunHooks",
    "run_registry",
]
