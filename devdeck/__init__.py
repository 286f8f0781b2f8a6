"""devdeck — workstation developer-tooling control panel."""

__version__ = "0.1.0"
