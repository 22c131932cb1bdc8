"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants, property allow-list, chunk sizing
- exceptions: Custom exception hierarchy
"""
