"""Database proxy service with declarative schema reconciliation."""
