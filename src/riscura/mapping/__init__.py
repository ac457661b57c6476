"""Risk-control relevance scoring, mapping ledger and catalog loading."""
