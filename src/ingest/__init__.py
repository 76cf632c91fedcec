"""Feed import pipeline.

This module decodes, classifies, and extracts feed lines.
It applies extracted records to a caller-owned model builder.
"""
