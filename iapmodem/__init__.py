"""YMODEM in-application programming loader with a simulated flash area and serial menu."""

__version__ = "1.0.0"

__all__ = ["common", "flash", "packet", "ymodem", "menu", "display"]