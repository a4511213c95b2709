"""
Domain Layer - Pure Business Logic

This layer contains the account entity and the lifecycle rules that decide
whether an account may hold a credential and authenticate.

No external dependencies allowed in this layer.
"""
