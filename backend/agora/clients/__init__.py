"""External collaborator clients: price oracle, ledger, announcements."""
