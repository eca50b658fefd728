"""
Booking scheduling and assignment core for the cleaning-services marketplace.
"""

__version__ = "0.1.0"
