"""Multi-tenant warehouse core: storage location index, stock ledger, order and request state machines."""

__version__ = "0.1.0"
