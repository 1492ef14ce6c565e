"""REST routers, one per entity, mounted under /api."""
