"""Read-only wallet reports."""

from pocketledger.queries.reports import WalletReporter

__all__ = ["WalletReporter"]
