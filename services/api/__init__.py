"""
Storefront API Service - FastAPI Application

Responsibilities:
- Expose RESTful endpoints for users, products, orders and files
- Authenticate callers with bearer JWTs and enforce role checks
- Filter, sort and paginate every listing through utils.query
- Answer with one JSON envelope for success and failure

Run with: python -m services.api
"""
