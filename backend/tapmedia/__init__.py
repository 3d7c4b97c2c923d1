"""
TapMedia Backend — Application Package
=======================================

A small FastAPI service that sits between the TAP website's embedded pages
and Cloudinary: it uploads media (tagging images with names read by OCR),
lists folders for the uploader, searches by tag, signs direct uploads and
proxies PDF downloads.

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Folder cache, OCR tags, uploads
    ├─────────────────────────────────────┤
    │     CloudinaryClient (Upstream)     │  ← SDK calls, retries, error mapping
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
