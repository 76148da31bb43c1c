"""auth/ -- Identity and access-control package for MeuBonsai.App.

Authorization (features, can, filter_output), authentication, activation
tokens, sessions and the SQLAlchemy store behind them.

Layer rule: auth/ imports from core/ and third-party libraries only.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
