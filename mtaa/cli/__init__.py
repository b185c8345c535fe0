"""CLI module for mtaa."""
