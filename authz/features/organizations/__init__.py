"""
Organization hierarchy feature module.

Checks the two-level organization invariant.
"""
