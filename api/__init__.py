"""api/ -- HTTP layer: app factory, request/response models, routers.

Layer rule: api/ imports from auth/ and core/. Nothing imports from api/
except asgi.py and the tests.
"""
