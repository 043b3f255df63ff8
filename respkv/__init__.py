"""
respkv: In-Memory Key-Value Store

An in-memory key-value server built with Python asyncio that speaks
the RESP wire protocol over raw TCP sockets.
"""

__version__ = "1.0.0"
