"""Eco Mode: live eco classification from battery and network signals."""

try:
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("eco-mode")
except Exception:
    __version__ = "dev"
