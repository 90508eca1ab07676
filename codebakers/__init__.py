"""
CodeBakers Engineering
======================

Drives a software project through scoping and eleven gated phases, keeping
a decision log, named artifacts and a file dependency graph along the way.
"""

__version__ = "0.1.0"
