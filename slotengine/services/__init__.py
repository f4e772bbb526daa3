"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_service import AvailabilityService, BusySourceProtocol

__all__ = ["AvailabilityService", "BusySourceProtocol"]
