"""MCP server exposing Tabby Grabby export and import as tools."""
import json
import sys
from pathlib import Path
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from tabby_grabby.capabilities import DocumentSink, FileSink
from tabby_grabby.chrome_bridge import get_bridge
from tabby_grabby.config import get_config
from tabby_grabby.errors import TabbyGrabbyError
from tabby_grabby.export_service import ExportService
from tabby_grabby.history import get_transfer_history
from tabby_grabby.import_service import ImportService


def _text(payload: Any) -> list[TextContent]:
    if isinstance(payload, str):
        return [TextContent(type="text", text=payload)]
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


def _export_sink() -> DocumentSink:
    """Write to the configured export directory, else download through the extension."""
    export_dir = get_config().export_dir
    if export_dir is not None:
        return FileSink(export_dir)
    return get_bridge()


async def _record_transfer(action: str, filename: Optional[str], tabs: int, bookmarks: int, errors=None) -> None:
    try:
        history = await get_transfer_history()
        await history.record(action, filename, tabs, bookmarks, errors)
    except Exception as e:
        print(f"Warning: could not record {action} in history: {e}", file=sys.stderr)


async def health_check_tool() -> list[TextContent]:
    bridge = get_bridge()
    config = get_config()
    return _text({
        "bridge_running": bridge.is_running,
        "extension_connected": bridge.is_connected,
        "bridge_port": config.bridge.port,
        "export_dir": str(config.export_dir) if config.export_dir else None,
    })


async def export_all_tool() -> list[TextContent]:
    """Tool handler for export_all."""
    service = ExportService.from_capabilities(get_bridge(), _export_sink())
    try:
        result = await service.export_all()
    except TabbyGrabbyError as e:
        return _text(f"Error: {e}")

    await _record_transfer("export", result.filename, result.tab_count, result.bookmark_count)
    return _text(result.to_dict())


async def export_stats_tool() -> list[TextContent]:
    service = ExportService.from_capabilities(get_bridge(), _export_sink())
    return _text(await service.get_export_stats())


async def import_file_tool(path: str) -> list[TextContent]:
    """Tool handler for import_file.

    Args:
        path: Path to a previously exported JSON document
    """
    service = ImportService.from_capabilities(get_bridge())
    try:
        result = await service.import_file(Path(path))
    except TabbyGrabbyError as e:
        return _text(f"Error: {e}")

    await _record_transfer("import", path, result.tabs_imported, result.bookmarks_imported, result.errors)
    return _text(result.to_dict())


async def import_preview_tool(path: str) -> list[TextContent]:
    service = ImportService.from_capabilities(get_bridge())
    try:
        raw = await service.read_file_as_text(Path(path))
    except TabbyGrabbyError as e:
        return _text({"valid": False, "error": str(e)})

    preview = await service.get_import_preview(raw)
    return _text(preview.to_dict())


async def get_transfer_history_tool(limit: int = 20) -> list[TextContent]:
    history = await get_transfer_history()
    transfers = await history.get_history(limit=limit)
    if not transfers:
        return _text("No transfers recorded yet.")
    return _text(transfers)


_PATH_SCHEMA = {
    "type": "object",
    "properties": {
        "path": {
            "type": "string",
            "description": "Path to a Tabby Grabby export JSON file"
        }
    },
    "required": ["path"]
}


def create_server() -> Server:
    """Create and configure the MCP server.

    Returns:
        Configured Server instance
    """
    server = Server("tabby-grabby")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name="health_check",
                description="Report whether the browser extension bridge is running and connected.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="export_all",
                description="Export all open tabs and the full bookmark tree to a single JSON document.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="export_stats",
                description="Count the tabs and bookmarks an export would currently contain.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="import_file",
                description="Reopen the tabs in a new window and recreate the bookmarks in a new import folder from an export file.",
                inputSchema=_PATH_SCHEMA,
            ),
            Tool(
                name="import_preview",
                description="Validate an export file and report what it contains without importing it.",
                inputSchema=_PATH_SCHEMA,
            ),
            Tool(
                name="get_transfer_history",
                description="List recent exports and imports, newest first.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "limit": {
                            "type": "integer",
                            "description": "Maximum number of transfers to return",
                            "default": 20
                        }
                    }
                },
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        arguments = arguments or {}
        if name == "health_check":
            return await health_check_tool()
        elif name == "export_all":
            return await export_all_tool()
        elif name == "export_stats":
            return await export_stats_tool()
        elif name in ("import_file", "import_preview"):
            path = arguments.get("path", "")
            if not path:
                return _text("Error: 'path' parameter is required")
            if name == "import_file":
                return await import_file_tool(path)
            return await import_preview_tool(path)
        elif name == "get_transfer_history":
            return await get_transfer_history_tool(int(arguments.get("limit", 20)))
        else:
            raise ValueError(f"Unknown tool: {name}")

    return server


async def main():
    """Main entry point for the MCP server."""
    server = create_server()
    bridge = get_bridge()
    await bridge.start()

    try:
        async with stdio_server() as (read_stream, write_stream):
            initialization_options = server.create_initialization_options()
            await server.run(read_stream, write_stream, initialization_options)
    finally:
        await bridge.stop()
