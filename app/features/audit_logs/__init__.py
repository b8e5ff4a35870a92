"""
Audit log feature module.

Records who did what to which resource, including authorization denials with
their internal reason.
"""
