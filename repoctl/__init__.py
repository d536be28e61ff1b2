"""Reading, checking and managing local Pacman repositories, and querying the AUR."""

__version__ = "0.22.0"