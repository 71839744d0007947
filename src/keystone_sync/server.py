"""Keystone Sync MCP Server.

FastMCP server wrapping one PlayerState and its Raider.IO importer.
Run: keystone-sync-mcp
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from .db import close_db, init_db
from .history import CharacterHistory
from .importer import RaiderIoImporter
from .state import PlayerState

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=False)
IMPORT = ToolAnnotations(readOnlyHint=False, destructiveHint=True, idempotentHint=True, openWorldHint=True)

state = PlayerState()
history = CharacterHistory()
importer = RaiderIoImporter(state, history)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize the history database."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await init_db()
    try:
        yield
    finally:
        await close_db()


mcp = FastMCP(
    "Keystone Sync",
    instructions="Import a character's Mythic+ runs from Raider.IO and inspect the best time per dungeon and weekly modifier.",
    lifespan=lifespan,
)


def _status() -> dict:
    return {"loading": importer.loading, "error": importer.error}


# ─── Tool 1: Import ──────────────────────────────────────────────────────────


@mcp.tool(annotations=IMPORT)
async def mplus_import_character(region: str, realm: str, name: str, force_refresh: bool = False) -> dict:
    """Import a character's best Mythic+ runs from Raider.IO.

    Overwrites the stored original and hypothetical times for every dungeon.

    Args:
        region: Region slug, e.g. 'eu' or 'us'.
        realm: Realm name, e.g. 'Draenor'.
        name: Character name.
        force_refresh: Bypass any cached Raider.IO response.
    """
    if importer.error:
        return {**_status(), "summary": "The last import failed. Call mplus_dismiss_error first."}
    if importer.loading:
        return {**_status(), "summary": "An import is already running."}

    await importer.import_character(region, realm, name, force_refresh)

    if importer.error:
        return {**_status(), "summary": f"Import of {name}-{realm} ({region}) failed. Call mplus_dismiss_error before retrying."}

    return {
        **_status(),
        "character": state.character_info.model_dump() if state.character_info else None,
        "timer_mismatches": [m.model_dump(mode="json") for m in importer.last_timer_mismatches],
        "score_mismatches": [m.model_dump(mode="json") for m in importer.last_score_mismatches],
        "summary": f"Imported {name}-{realm} ({region}).",
    }


# ─── Tool 2: Status ──────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mplus_import_status() -> dict:
    """Whether an import is running or has failed."""
    return _status()


# ─── Tool 3: Dismiss error ───────────────────────────────────────────────────


@mcp.tool()
async def mplus_dismiss_error() -> dict:
    """Clear a failed import so a new one can start."""
    importer.dismiss_error()
    return _status()


# ─── Tool 4: Times ───────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mplus_times() -> dict:
    """Current character, original and hypothetical times, and base scores."""
    return state.to_dict()


# ─── Tool 5: Character history ───────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def mplus_character_history(limit: int = 20) -> dict:
    """Previously imported characters, newest first.

    Args:
        limit: Maximum number of snapshots. Default 20.
    """
    snapshots = await history.recent(limit=limit)
    return {
        "snapshots": [s.model_dump(mode="json") for s in snapshots],
        "count": len(snapshots),
    }


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
