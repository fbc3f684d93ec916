"""vaultpack - export a note and everything it links to out of a vault."""

__version__ = "0.1.0"
