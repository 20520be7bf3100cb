"""
Services package for the upload engine.

Option resolution, content-type detection and the S3 storage engine.
"""
