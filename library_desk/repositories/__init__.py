"""
Repositories: key-value storage and the library snapshot.
"""
