"""k-releaser: release automation driven by conventional commits."""

__version__ = "0.1.0"
