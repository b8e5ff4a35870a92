"""
Authorization feature module.

Static role→permission registry, role hierarchy comparator, and the pure
authorization decision engine consumed by route dependencies.
"""
