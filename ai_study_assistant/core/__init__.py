"""
Core modules for the AI Study Assistant.

This package contains cost computation, conversation history management
and budget tracking. Nothing here performs file or network I/O.
"""
