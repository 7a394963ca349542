"""Parsers for external tool output, one module per format."""
