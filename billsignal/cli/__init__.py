"""Command-line interface for BillSignal."""
