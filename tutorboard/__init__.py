"""
tutorboard - weekly teacher availability, booked by students across timezones.
"""

__version__ = "0.1.0"
