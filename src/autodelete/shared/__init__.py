"""
Shared infrastructure: configuration-aware logging, database sessions, errors.
"""
