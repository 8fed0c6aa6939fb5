"""
Pure domain layer: epoch clock, DTOs, access rules, velocity arithmetic.

Nothing in this package touches the database.
"""
