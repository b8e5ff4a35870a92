"""
Programming errors raised by the authorization registry.

These signal a bug in the calling layer (an identifier outside the closed
role/permission sets got past validation) and are never turned into denials.
"""


class AuthorizationConfigError(ValueError):
    """Base class for invalid inputs to the authorization engine."""


class InvalidRoleError(AuthorizationConfigError):
    """Role is not one of OWNER, ADMIN, VIEWER."""

    def __init__(self, role: object):
        self.role = role
        super().__init__(f"Unknown role: {role!r}")


class InvalidPermissionError(AuthorizationConfigError):
    """Permission identifier is not in the fixed permission set."""

    def __init__(self, permission: object):
        self.permission = permission
        super().__init__(f"Unknown permission: {permission!r}")
