"""
VaultRecall: local-first semantic and lexical memory retrieval over a
notes vault.
"""

__version__ = "0.1.0"
