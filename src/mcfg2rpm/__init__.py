"""Convert MachineConfig documents into installable packages."""

__version__ = "0.1.0"
