"""
Site CMS - Content backend for a single-page site.

A small FastAPI service that stores one JSON content document and accepts
image uploads behind a shared admin password.  Runs either as a long-lived
process with local disk storage or as a stateless function backed by JSONBin
and Cloudinary.
"""

__version__ = "1.0.0"
