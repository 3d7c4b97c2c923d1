# Services package init
"""
TapMedia Backend — Services Layer
==================================

Service Inventory:
    - CloudinaryClient: Async, retrying wrapper over the Cloudinary SDK
    - FolderLister:     Recursive folder listing behind a TTL cache
    - ocr_tags:         OCR text extraction and tag derivation (pure functions)
    - UploadService:    Upload → OCR → tag workflow and upload signing
    - SearchService:    Tag search expression building and result shaping
    - PdfService:       Streaming CDN fetch for PDF downloads
    - FileService:      Staging of multipart uploads on local disk
"""
