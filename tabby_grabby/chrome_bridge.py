"""WebSocket bridge to the Tabby Grabby browser extension.

The extension connects to this server and executes commands against the
browser's native tabs, windows, bookmarks and downloads APIs. ChromeBridge
implements both ``BrowserCapabilities`` and ``DocumentSink``.

Protocol:
  Server -> Extension:  {"id": "<uuid>", "action": "<cmd>", "params": {...}}
  Extension -> Server:  {"id": "<uuid>", "status": "ok"|"error", "result"|"error": ...}
"""
import asyncio
import base64
import json
import sys
import uuid
from typing import Any, Dict, List, Optional

import websockets
from websockets.asyncio.server import serve as ws_serve

DEFAULT_PORT = 8765
RESPONSE_TIMEOUT = 15.0  # seconds to wait for extension response


class ChromeBridge:
    """Async WebSocket server that proxies commands to the browser extension."""

    def __init__(self, port: int = DEFAULT_PORT, response_timeout: float = RESPONSE_TIMEOUT):
        self.port = port
        self.response_timeout = response_timeout
        self._ws: Optional[Any] = None
        self._server: Optional[Any] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._running = False
        self._connected = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the WebSocket server (non-blocking)."""
        try:
            self._server = await ws_serve(
                self._handler,
                "localhost",
                self.port,
            )
            self._running = True
            print(
                f"[ChromeBridge] WebSocket server listening on ws://localhost:{self.port}",
                file=sys.stderr,
            )
        except OSError as e:
            print(
                f"[ChromeBridge] Could not start WebSocket server on port {self.port}: {e}",
                file=sys.stderr,
            )

    async def stop(self) -> None:
        """Shut down the WebSocket server."""
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._running = False
        self._connected = False
        self._ws = None

    @property
    def is_connected(self) -> bool:
        """True if the extension is currently connected."""
        return self._ws is not None and self._connected

    @property
    def is_running(self) -> bool:
        """True if the WebSocket server is up (even if no client connected)."""
        return self._running

    # ------------------------------------------------------------------
    # WebSocket handler
    # ------------------------------------------------------------------

    async def _handler(self, websocket: Any) -> None:
        """Handle a single extension connection."""
        self._ws = websocket
        self._connected = True
        print("[ChromeBridge] Extension connected", file=sys.stderr)

        try:
            async for raw in websocket:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue

                # Keepalive / pong
                if msg.get("type") in ("keepalive", "pong"):
                    continue

                # Response to a pending command
                msg_id = msg.get("id")
                if msg_id and msg_id in self._pending:
                    self._pending[msg_id].set_result(msg)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            print("[ChromeBridge] Extension disconnected", file=sys.stderr)
            self._connected = False
            self._ws = None

    # ------------------------------------------------------------------
    # Send commands
    # ------------------------------------------------------------------

    async def _send_command(self, action: str, params: dict) -> Any:
        """Send a command to the extension and wait for the response.

        Raises:
            ConnectionError: Extension not connected.
            TimeoutError: Extension did not respond in time.
            RuntimeError: Extension returned an error.
        """
        if not self.is_connected:
            raise ConnectionError("Browser extension is not connected")

        cmd_id = str(uuid.uuid4())
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[cmd_id] = future

        try:
            await self._ws.send(json.dumps({
                "id": cmd_id,
                "action": action,
                "params": params,
            }))

            response = await asyncio.wait_for(future, timeout=self.response_timeout)

            if response.get("status") == "error":
                raise RuntimeError(response.get("error", "Unknown extension error"))

            return response.get("result", {})
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"Browser extension did not respond to '{action}' within {self.response_timeout}s"
            )
        finally:
            self._pending.pop(cmd_id, None)

    # ------------------------------------------------------------------
    # Browser capabilities
    # ------------------------------------------------------------------

    async def get_all_windows(self) -> List[Dict[str, Any]]:
        """Get all windows with their tabs populated."""
        return await self._send_command("getAllWindows", {"populate": True})

    async def create_window(self, url: str, focused: bool = True) -> Dict[str, Any]:
        return await self._send_command("createWindow", {"url": url, "focused": focused})

    async def create_tab(self, window_id: Any, url: str, pinned: bool = False, active: bool = False) -> Dict[str, Any]:
        return await self._send_command("createTab", {
            "windowId": window_id, "url": url, "pinned": pinned, "active": active,
        })

    async def get_bookmark_tree(self) -> List[Dict[str, Any]]:
        """Get full bookmark tree from the browser."""
        return await self._send_command("getTree", {})

    async def create_bookmark(self, parent_id: str, title: str, url: Optional[str] = None) -> Dict[str, Any]:
        """Create a bookmark, or a folder when no URL is given."""
        params = {"parentId": parent_id, "title": title}
        if url is not None:
            params["url"] = url
        return await self._send_command("createBookmark", params)

    # ------------------------------------------------------------------
    # Document sink
    # ------------------------------------------------------------------

    async def save(self, data: bytes, filename: str) -> str:
        """Have the extension offer ``data`` as a browser download."""
        result = await self._send_command("download", {
            "filename": filename,
            "data": base64.b64encode(data).decode("ascii"),
            "mimeType": "application/json",
            "saveAs": True,
        })
        download_id = result.get("downloadId") if isinstance(result, dict) else None
        return f"download:{download_id or filename}"


# ---------------------------------------------------------------------------
# Global singleton
# ---------------------------------------------------------------------------

_bridge: Optional[ChromeBridge] = None


def get_bridge() -> ChromeBridge:
    """Get or create the global bridge instance."""
    global _bridge
    if _bridge is None:
        from tabby_grabby.config import get_config
        bridge_config = get_config().bridge
        _bridge = ChromeBridge(port=bridge_config.port, response_timeout=bridge_config.response_timeout)
    return _bridge
