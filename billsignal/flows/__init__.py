"""Prefect flows for BillSignal."""
