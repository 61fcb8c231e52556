"""
bondchain - settlement accessor for a bonded question-answering oracle.

Replays the ledger's append-only answer log into bond totals and the
exact claim chain the on-ledger verifier expects.
"""

__version__ = "0.1.0"
