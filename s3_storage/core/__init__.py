"""
Core Module

Shared components:
- Configuration management
- Logging configuration
- Application exceptions
"""
