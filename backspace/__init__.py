"""BackSpace: Internet Archive content tooling for SpaceCraft."""

__version__ = "0.3.0"
