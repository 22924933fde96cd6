"""
Core utilities: shared exceptions and cross-cutting concerns used by the
listener, activity engine, backend client, store and API server.
"""
