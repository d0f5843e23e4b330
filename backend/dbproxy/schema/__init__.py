"""Desired schema model, type mapping and reconciliation."""
