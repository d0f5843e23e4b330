"""Database connection, execution and introspection layer."""
