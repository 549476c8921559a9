"""Command-line interface for citrace."""
