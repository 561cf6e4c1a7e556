"""
Operational HTTP surface.
"""
