"""Validation, merging and ranking of usage reports."""
