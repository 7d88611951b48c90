"""vibetorrent - web dashboard for rTorrent."""

__version__ = "0.1.0"
__logo__ = "🌀"
