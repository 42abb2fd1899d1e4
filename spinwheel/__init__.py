"""spinwheel — prize wheel and Big Red Button bot for Discord."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("spinwheel")
except PackageNotFoundError:
    __version__ = "0.0.0"
