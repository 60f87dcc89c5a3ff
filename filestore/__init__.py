"""
filestore - single-file persistent key-value store with a deserialization allow-list.

Snapshot format: pickle, one dict of entries per file.
Security boundary: every global resolved during load is checked against the
store's permitted types (default deny).
"""

import pickle

__version__ = "1.3.0"

# Protocol used for every snapshot and every encrypted payload
SNAPSHOT_PROTOCOL = pickle.HIGHEST_PROTOCOL
