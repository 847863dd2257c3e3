"""auth/ -- Authentication package for VidTube.

Holds the credential store, the token service and the auth flow controller.

Layer rule: auth/ may import from core/ only. The uploader is passed in.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
