"""
fee_kernel -- domain types, exceptions and structured logging for the fee engine.

Nothing in this package performs I/O.  Engines (``fee_engines``) and the
service layer (``fee_services``) build on it; it imports neither.
"""
