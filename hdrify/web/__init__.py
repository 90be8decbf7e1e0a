"""
hdrify Web Interface
====================

FastAPI application exposing the converter to a browser:

    pip install hdrify
    hdrify serve
"""

__all__ = ['server']
