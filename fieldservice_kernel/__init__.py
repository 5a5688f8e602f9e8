"""
Field Service Kernel

Quote approval for an installation / maintenance / repair business:
- Exactly-once approval (row lock plus one work order per quote)
- Atomic stock ledger with derived exhaustion status
- Equipment provisioning with unique serials
- Weekday work-order scheduling
- Full rollback on any failed approval step
"""

__version__ = "0.1.0"
