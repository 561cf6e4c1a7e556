"""
Per-channel message auto-deletion bot.
"""

__version__ = "0.1.0"
