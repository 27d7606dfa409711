"""Adapters for suitetree.

Provide concrete implementations of the interface ports (reporters, run id
generators).

Dependency rule: may import `suitetree.interfaces` and `suitetree.domain`; the
domain must not import this package.
"""
