"""Achievement ledger and ranking service."""
