"""
kern CLI - Deterministic Rule Execution

Commands:
- kern run - Execute a plan against an input record
- kern ledger verify/show - Audit ledger operations
- kern version - Version information
"""

__version__ = "3.1.0"
