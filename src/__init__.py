"""Airbnb MCP server package."""
