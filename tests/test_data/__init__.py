"""
Data tests for EKFANN.

Tests for synthetic load curves, CSV loading, scaling and windowing.
"""
