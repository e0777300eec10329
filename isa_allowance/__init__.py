"""
ISA Allowance - Source Package

An accounting engine for UK ISA contributions: tax-year attribution,
the shared £20,000 annual allowance, flexible-ISA replacement allowance,
Lifetime ISA rules and a saving-consistency score.

DESIGN PRINCIPLES:
1. The engine computes, the caller persists
2. Business-rule violations are values, never exceptions
3. No silent corrections
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "ISA Allowance Team"
