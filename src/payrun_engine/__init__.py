"""Pay run lifecycle and line calculation engine."""

__version__ = "0.1.0"
