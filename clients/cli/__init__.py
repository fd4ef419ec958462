# Command-line entry points: generate-portal and mcp-integration.
