import logging

from src.config import LOG_LEVEL
from src.mcp_server import mcp

if __name__ == "__main__":
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run(transport="streamable-http")
