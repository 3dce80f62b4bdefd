"""Serverless ingest path.

A single Lambda-style handler that accepts base64 image payloads from the
capture client and writes them straight to S3 under timestamp keys. It
does not go through the API's storage facade.
"""
