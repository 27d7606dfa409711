"""Domain layer for suitetree.

Contains the registry rules: tags, tree nodes, the immutable registry value,
tag filters, test outcomes, and the error taxonomy. This package is deliberately
free of threading and reporting concerns.

Dependency rule: do not import from `suitetree.engine`, `suitetree.adapters`
or the front-end modules.
"""
