"""
Booking Kernel

Core of the rental / leasing transaction builder:
- Free navigation across an ordered set of data-entry steps
- Derived step status (never stored authoritatively)
- Split payments across loyalty points, wallet, credit, cards, cash,
  bank transfer and deferred payment links
- Decimal-only money with explicit rounding
"""

__version__ = "0.1.0"
