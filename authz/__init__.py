"""
Organization-scoped authorization engine.

Resolves a user's permissions, role memberships and the set of users whose
resources they may access within a two-level organization hierarchy.
"""
