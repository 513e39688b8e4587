"""Command line interface for k-releaser."""
