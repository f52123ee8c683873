"""
terminslot - appointment slot availability for the healthcare booking platform.
"""

__version__ = "0.3.0"
