"""
Shared layer: configuration-backed logging, error envelope, request context,
database engine and HTTP middleware used by every bounded context.
"""
