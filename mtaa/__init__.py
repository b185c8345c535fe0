"""
mtaa - client for the MTAA Connect letter-request service.
"""

__version__ = "0.1.0"
__logo__ = "📄"
