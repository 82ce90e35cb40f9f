"""Appointment booking for public health clinics."""

__version__ = "0.1.0"
