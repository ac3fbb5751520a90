"""apt-pkg-cache — capture and replay apt package installs for CI."""

__version__ = "0.1.0"
