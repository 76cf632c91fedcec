"""Emission gateway and storage sinks.

This module shapes model entities into sink payloads and writes them
to the relational and document stores, plus the import ledger.
"""
