"""HTTP routes of the billing API."""
