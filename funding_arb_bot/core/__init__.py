"""
Core scheduling components
"""

from .clock import CycleClock

__all__ = ['CycleClock']
