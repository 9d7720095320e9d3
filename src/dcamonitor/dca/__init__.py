"""
Jupiter DCA program access.
"""

from .client import DcaAccountSource, decode_dca_account

__all__ = ["DcaAccountSource", "decode_dca_account"]
