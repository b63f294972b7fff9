"""
designkit — skill routing, knowledge loading and project configuration
management for a design-system assistant plugin.
"""

__version__ = "0.3.0"
