"""Core gameplay primitives (prompt stacking, turn events, public views).

Kept free of FastAPI concerns so it can be reused by API routes, bots, and tests.
"""
