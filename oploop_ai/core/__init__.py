"""
Core utilities and configuration for oploop-ai.

This package provides logging configuration and monitoring integration shared
by the agent core and the server.
"""
