"""Domain entities."""

from .account import Account, AccountRole, AccountStatus, InvalidAccountTransition

__all__ = ["Account", "AccountRole", "AccountStatus", "InvalidAccountTransition"]
