"""Core domain package for content integrity.

Core contains legacy URL resolution and dead link checking without any HTTP
client or content-backend specific code, keeping the business logic portable.
"""
