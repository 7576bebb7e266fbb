"""BioHub Darwin Core Archive submission pipeline."""

__version__ = "0.1.0"
