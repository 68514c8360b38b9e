"""Payment confirmation and subscription reconciliation."""
