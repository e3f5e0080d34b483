"""Command modules for the flowaudit CLI."""
