"""
Audit trail feature module.

Records authorization decisions and scoped data access. The audit trail
consumes decisions; it never influences them.
"""
