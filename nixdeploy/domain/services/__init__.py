"""
Domain Services Package

Architectural Intent:
- Stateless domain logic that does not belong to a single value object
"""
