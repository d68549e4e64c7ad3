"""
Version of the pglogsink distribution.

Release builds overwrite ``__version__`` with the tag-derived version.
Source checkouts that were never built keep the local default below.
"""

__version__ = "0.0.0+local"
