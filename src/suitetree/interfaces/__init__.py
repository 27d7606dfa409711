"""Interfaces (host boundary) for suitetree.

Defines framework-free contracts shared by the engine front-ends and adapters:
the reporter port with its event DTOs, and the run id generator.

Dependency rule: may import `suitetree.domain` value types only. It may be
imported by `suitetree.adapters` and the front-end modules.
"""
