"""
Direct-to-storage uploads with signed URLs.
"""
__version__ = "0.1.0"
