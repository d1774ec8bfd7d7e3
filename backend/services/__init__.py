"""
Services Package
================
Extraction pipeline: strategies, back-end clients, parsers and progress.

Usage:
    from services.extraction_service import ExtractionService
"""
