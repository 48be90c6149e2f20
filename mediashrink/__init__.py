"""
mediashrink — shrink uploaded images, GIFs and videos over HTTP.
"""

__version__ = "0.1.0"
