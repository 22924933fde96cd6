"""
API server package: HTTP read API over the merged activity collection.
"""
