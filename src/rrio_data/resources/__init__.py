"""Data files bundled with the package (endpoint catalogue)."""
