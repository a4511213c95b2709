"""
Infrastructure Layer - Adapters for storage, mail, tokens and HTTP

Implements the application interfaces against SQLAlchemy, Redis, SendGrid
and FastAPI.
"""
