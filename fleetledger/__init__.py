"""Vehicle fleet leasing ledger and billing engine."""
