"""
availabilityengine - Resolve bookable appointment slots from business hours,
time-off and existing bookings.
"""

__version__ = "0.1.0"
