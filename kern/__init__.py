"""
Deterministic Rule Execution Engine

Executes an ordered plan of declarative steps against a record, producing the
new record, a hash-stamped execution ledger and a violation report.
"""

__version__ = "3.1.0"
