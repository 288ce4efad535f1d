"""
MimiBot
=======

Discord community bot: anti-spam moderation, a ticket desk and keyword
auto-replies.

Author: MimiDLC
"""

__version__ = "2.0.0"
