"""
Time capsule identity and credential service.

Registers accounts, proves control of an email address with a one-time code,
authenticates with a password, issues and validates bearer tokens and gates
the courier role behind manual approval.
"""

__version__ = "1.0.0"
