"""Keystone Sync.

Import a character's Mythic+ runs from Raider.IO, keep the best time per
dungeon and weekly modifier, and check Raider.IO's scores against your own.
"""

__version__ = "0.1.0"
