"""
Pydantic schemas for library entities and derived views.
"""
