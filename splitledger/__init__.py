"""
Split Ledger - Source Package

Shared-group expense ledger and debt-settlement engine for flatmates
and trip groups.

DESIGN PRINCIPLES:
1. Money is conserved: every expense and settlement is zero-sum
2. Balances are derived on read, never stored
3. Fail visibly on writes, degrade gracefully on derived views
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
