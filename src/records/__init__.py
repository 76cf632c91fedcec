"""Fixed-width record layouts and per-family field extraction.

This module turns classified feed lines into typed records.
It holds no state and never touches storage.
"""
