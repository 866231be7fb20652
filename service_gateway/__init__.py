"""
Janus gateway service package.
"""

__version__ = "0.2.1"
