"""
Service layer for the library desk.
"""
