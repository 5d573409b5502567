"""Balance ledger and its storage adapters."""
