"""
Directory feature module.

Users, organizations, roles and permissions, and the read-only store the
authorization engine queries them through.
"""
