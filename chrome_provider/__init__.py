"""Local and remote Chrome browser provider driven over the DevTools protocol."""

__version__ = "0.1.0"
