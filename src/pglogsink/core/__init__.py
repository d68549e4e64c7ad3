"""Core buffering, encoding and lifecycle primitives for pglogsink."""
