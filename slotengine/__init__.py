"""
slotengine - availability and bookable slot computation for appointment scheduling.
"""

__version__ = "0.1.0"
