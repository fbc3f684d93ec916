"""Custom exceptions for vaultpack."""


class VaultpackError(Exception):
    """Base exception for vaultpack errors."""
    pass


class VaultNotFoundError(VaultpackError, FileNotFoundError):
    """Raised when no vault directory can be located."""
    pass


class NoteNotFoundError(VaultpackError):
    """Raised when the requested root note is not part of the vault."""
    pass


class ExportPathError(VaultpackError):
    """Raised when an export destination would land outside the target directory."""
    pass
