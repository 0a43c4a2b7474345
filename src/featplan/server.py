"""featplan MCP server."""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, load_config
from .tools import SessionHolder, register_all_tools


def build_server(config: Optional[Config] = None, holder: Optional[SessionHolder] = None) -> FastMCP:
	"""
	Create an MCP server exposing the board tools for one workspace.

	Without a holder the tools share a session that also watches the plan
	document, so edits made outside the server are logged while it runs.
	"""
	config = config or load_config()
	mcp = FastMCP("featplan")
	register_all_tools(mcp, config, holder or SessionHolder(config, watch=True))
	return mcp
