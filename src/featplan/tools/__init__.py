"""MCP tool registration - modular tool definitions."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..config import Config
from .board import SessionHolder, register_board_tools

logger = logging.getLogger(__name__)

__all__ = ["SessionHolder", "register_all_tools"]


def register_all_tools(mcp: FastMCP, config: Config, holder: Optional[SessionHolder] = None) -> None:
	"""Register all MCP tools."""
	register_board_tools(mcp, config, holder)
	logger.debug(f"Registered board tools for {config.workspace_root}")
