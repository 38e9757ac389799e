"""
Visits Domain

Listing and scheduling of visits, each with the address it takes place at.
Addresses are filled from the postal code directory and are written in the
same transaction as their visit.
"""

from .router import router

__all__ = ["router"]
