"""Infrastructure Layer — store access, notification delivery and cross-cutting concerns.

Invariants:
    - Infrastructure never decides round outcomes (that is core/)
    - All external calls bounded by a timeout and mapped to logged failures
"""
