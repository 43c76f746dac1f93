"""
Collaborator clients used by node handlers: Drive storage, generation
providers and MCP servers.
"""
