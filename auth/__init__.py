"""auth/ -- Identity gateway package for BookNest.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or books/.
api/ imports from auth/, not the other way around.
"""
