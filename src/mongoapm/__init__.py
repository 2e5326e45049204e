"""MongoDB client command metrics.

Records roundtrip latency and error counts for every command a pymongo
client sends, tagged by driver, server version, server type and command,
and exposes them to Prometheus.
"""

__version__ = "0.1.0"
