"""api/ -- FastAPI HTTP layer for the MeuBonsai.App identity service.

Layer rule: api/ may import from auth/ and core/. Nothing imports from api/
except asgi.py and the tests.
"""
