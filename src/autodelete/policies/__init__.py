"""
Per-channel retention policies and the admin commands that edit them.
"""
