"""
Sprout knowledge base.

Contains clinical reference data:
- Growth standards (WHO sample, CDC 2000 LMS)
- Growth assessment bands
"""
