"""HoloCard — auth and session service for the holographic trading-card app.

Owns the sign-in boundary (local username/password sessions, GitHub
federated sign-in, PocketBase-native auth), the page guards that sit in
front of collections/create/gallery, and the local image gallery.
"""

__version__ = "0.1.0"
