"""
HTTP API package for BillSignal.
"""
