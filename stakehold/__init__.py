"""stakehold -- position ledger and portfolio analytics."""

__version__ = "0.1.0"
