"""
bangrouter - a bang-style keyword redirector.

An HTTP endpoint receives a free-text query, resolves its first word against
a registry of named redirect targets and redirects to the rendered URL. Every
request is appended to a usage log that can be aggregated into per-day and
all-time statistics.
"""

__version__ = "0.1.0"
__author__ = "bangrouter contributors"

__all__ = ['__version__']
