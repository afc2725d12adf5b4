"""
vaultwallet - chain access and signing for token vault operations
"""

__version__ = "0.3.0"
