"""Relational product, price, and discount model.

This module resolves composite keys and accumulates typed entities.
It exposes read-only snapshots and the buyer price quote join.
"""
