"""
API package - request contracts and global middleware.

This package provides:
- Pydantic request models for the filter endpoints
- Global middleware (request_id, request logging, query timing, error envelope,
  dashboard cache headers)
"""
