"""Aladin MCP Server.

Exposes the Aladin book catalog Open API (search, lookup and list
endpoints plus the category reference table) as MCP tools.
"""

__version__ = "0.1.0"
