"""
Application Layer - Use-case contracts

Interfaces the infrastructure layer implements for the account store.
"""
