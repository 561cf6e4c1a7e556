"""
Scheduled message deletion.
"""
