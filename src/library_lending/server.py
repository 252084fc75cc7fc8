"""Library Lending MCP Server

Wires the inventory service to the Model Context Protocol:

- Resources (read-only): the inventory, single books, borrow history
- Tools (state-changing): create, borrow, return, search, delete

Logging goes to stderr so stdout stays clean for the stdio transport.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from library_lending.config import ServerConfig, get_config
from library_lending.database.session import get_db_manager
from library_lending.observability import configure_observability
from library_lending.resources import all_resources
from library_lending.tools import all_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Library Lending Server - tracks a library's book inventory and the lending "
    "lifecycle of each copy. Use resources to browse books and borrow history, "
    "and tools to create books, borrow and return copies, and search the inventory."
)


def configure_logging(config: ServerConfig) -> None:
    """Send log records to stderr at the configured level."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.is_development:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def build_server(config: ServerConfig) -> FastMCP:
    """Create the FastMCP server and register every resource and tool."""
    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=INSTRUCTIONS,
    )

    for resource in all_resources:
        uri = resource.get("uri_template", resource.get("uri"))
        logger.debug("Registering resource: %s with URI: %s", resource["name"], uri)
        mcp.resource(
            uri,
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])

    logger.info("Registered %d resources", len(all_resources))

    for tool in all_tools:
        logger.debug("Registering tool: %s", tool["name"])
        mcp.tool(
            name=tool["name"],
            description=tool["description"],
        )(tool["handler"])

    logger.info("Registered %d tools", len(all_tools))
    return mcp


def run_server(config: ServerConfig) -> None:
    """Prepare storage and serve on the configured transport."""
    db_manager = get_db_manager()
    db_manager.init_database()
    if not db_manager.verify_connection():
        logger.error("Database is not reachable, refusing to start")
        sys.exit(1)

    mcp = build_server(config)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        db_manager.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("Starting %s v%s on %s", config.server_name, config.server_version, config.transport)
    if config.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)


def main() -> None:
    """Entry point for the `library-lending` command."""
    config = get_config()
    configure_logging(config)
    configure_observability(config)

    logger.info("Library Lending Server %s (transport=%s)", config.server_version, config.transport)
    try:
        run_server(config)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)
    finally:
        get_db_manager().close()


if __name__ == "__main__":
    main()
