"""
Tool provider SDK: schema registry, dispatch, transports, a multi-provider
client and a tool-calling agent loop.
"""

__version__ = "1.0.0"
