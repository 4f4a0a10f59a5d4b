"""MCP host adapter: ``python -m idleeconomy.mcp <economy_module>``."""
