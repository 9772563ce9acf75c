"""auth/ -- Credentials and authentication strategies for Biblio.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or catalog/ at runtime (gateway.py references
catalog.service for type checking only). api/ imports from auth/, not the
other way around.
"""
