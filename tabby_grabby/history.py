"""Transfer history: one SQLite row per export or import."""
import json
import aiosqlite
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Dict, Any


# Default database location
DEFAULT_DB_PATH = Path.home() / ".tabby-grabby" / "history.db"


class TransferHistory:
    """Records exports and imports in SQLite so past transfers can be listed."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or DEFAULT_DB_PATH
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Initialize the database, creating the transfers table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS transfers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                action TEXT NOT NULL,
                filename TEXT,
                tab_count INTEGER NOT NULL DEFAULT 0,
                bookmark_count INTEGER NOT NULL DEFAULT 0,
                errors TEXT NOT NULL DEFAULT '[]'
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_transfers_timestamp
            ON transfers(timestamp DESC)
        """)

        await self._connection.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def record(
        self,
        action: str,
        filename: Optional[str],
        tab_count: int,
        bookmark_count: int,
        errors: Optional[List[str]] = None,
    ) -> int:
        """Record a transfer.

        Args:
            action: 'export' or 'import'
            filename: Export filename or imported file path
            tab_count: Tabs exported or imported
            bookmark_count: Bookmarks exported or imported
            errors: Per-branch error messages, if any

        Returns:
            ID of the recorded transfer
        """
        if not self._connection:
            raise RuntimeError("TransferHistory not initialized. Call initialize() first.")

        now = datetime.now(timezone.utc).isoformat()

        cursor = await self._connection.execute(
            "INSERT INTO transfers (timestamp, action, filename, tab_count, bookmark_count, errors) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (now, action, filename, tab_count, bookmark_count, json.dumps(errors or [])),
        )
        await self._connection.commit()

        return cursor.lastrowid

    async def get_history(self, limit: int = 20, action: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get recent transfers, newest first.

        Args:
            limit: Maximum number of transfers to return
            action: Only return transfers of this kind
        """
        if not self._connection:
            raise RuntimeError("TransferHistory not initialized. Call initialize() first.")

        if action:
            cursor = await self._connection.execute(
                "SELECT * FROM transfers WHERE action = ? ORDER BY id DESC LIMIT ?",
                (action, limit),
            )
        else:
            cursor = await self._connection.execute(
                "SELECT * FROM transfers ORDER BY id DESC LIMIT ?",
                (limit,),
            )
        rows = await cursor.fetchall()

        return [self._row_to_dict(row) for row in rows]

    def _row_to_dict(self, row: aiosqlite.Row) -> Dict[str, Any]:
        """Convert a database row to a dictionary."""
        result = dict(row)
        try:
            result["errors"] = json.loads(result.get("errors") or "[]")
        except json.JSONDecodeError:
            result["errors"] = []
        return result


# Global history instance
_history: Optional[TransferHistory] = None


async def get_transfer_history() -> TransferHistory:
    """Get or create the global transfer history instance.

    Returns:
        Initialized TransferHistory
    """
    global _history

    if _history is None:
        from tabby_grabby.config import get_config
        _history = TransferHistory(get_config().history_db_path)
        await _history.initialize()

    return _history
