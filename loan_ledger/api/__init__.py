"""HTTP routers for the ledger API."""
