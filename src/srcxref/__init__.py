"""srcxref: cross-file symbol index and go-to-definition for mixed-language codebases."""

__version__ = "0.3.0"
