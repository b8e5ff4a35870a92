"""
Task management feature module.

Organization-scoped tasks whose visibility and mutability are decided by the
authorization engine from owner, assignee and role.
"""
