"""
Apple Mail MCP Server package.

Exposes the local Apple Mail application to MCP clients by generating
AppleScript per call, running it through osascript and parsing the output.
"""

__version__ = "1.0.0"
