"""suitetree

A registration and execution engine for test suites. Suite front-ends register
scopes and tests while the suite object is constructed; the engine keeps them in
an ordered, immutable tree and later walks that tree on demand, reporting
lifecycle signals to the host.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
