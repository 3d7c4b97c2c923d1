# Routes package init
"""
TapMedia Backend — API Routes Package
======================================

Route Inventory:
    - folders.py:    GET  /api/folders           (cached folder picker listing)
    - upload.py:     POST /api/upload            (server-side upload + OCR tags)
                     POST /api/sign-upload       (direct browser upload signature)
    - search.py:     GET|POST /api/search        (tag search)
    - downloads.py:  POST /api/download-pdf      (CDN PDF proxy)
    - pages.py:      GET  /api/uploader          (bulk uploader page)
                     GET  /api/version           (deployed version)
    - health.py:     GET  /health                (service health check)

Routes stay thin: they pull data out of the request, call a service, and
shape the response. Cloudinary and CDN access lives in services.
"""
