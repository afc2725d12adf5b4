"""
tokenvault - token release vault operations
"""

__version__ = "0.3.0"
