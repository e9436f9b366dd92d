"""
clinicscheduler - Doctor availability and appointment conflict detection.
"""

__version__ = "0.1.0"
