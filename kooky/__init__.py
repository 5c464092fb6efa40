"""Find browser cookie stores and read, filter and export their cookies."""

__version__ = "0.1.0"