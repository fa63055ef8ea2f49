"""
medtrans - translate medicine content records into other languages.
"""

__version__ = "0.1.0"
