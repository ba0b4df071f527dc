"""Appointment scheduling core for the dental clinic admin front end."""

__version__ = "0.1.0"
