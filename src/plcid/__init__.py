"""did:plc identity management for package publishers.

Builds, signs and submits the hash-chained operation log that establishes a
publisher's rotation keys, verification keys and repository service.
"""

__version__ = "0.3.0"
