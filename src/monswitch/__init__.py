"""Save and restore multi-monitor layouts keyed by the connected monitors."""

__version__ = "0.1.0"
