"""
HubSpot MCP Bridge - HTTP front door for the HubSpot MCP server.

Spawns the HubSpot MCP server as a child process and exposes its tools
over a small JSON HTTP API suitable for cloud hosting platforms.
"""

__version__ = "1.0.0"
