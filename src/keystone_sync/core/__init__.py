"""Core import logic: catalog, models, run selection, and the Raider.IO client.

This module has no dependency on MCP or the database. The server and the
history archive import from here.
"""
