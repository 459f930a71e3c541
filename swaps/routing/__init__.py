"""
Venue routing
"""

from .router import VenueRouter

__all__ = ["VenueRouter"]
