"""
Core package: logging configuration and application exceptions.
"""
