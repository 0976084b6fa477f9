"""mantenedor — generic entity store with opt-in validation and a global version counter."""

__version__ = "0.1.0"
