"""media/ -- Media host client (avatar and cover image uploads).

Layer rule: media/ imports only stdlib + third-party libraries.
"""
