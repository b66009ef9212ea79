"""Main entry point for the Tabby Grabby MCP server."""
import asyncio

from tabby_grabby.server import main as server_main


def main() -> None:
    asyncio.run(server_main())


if __name__ == "__main__":
    main()
