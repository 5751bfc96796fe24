# Routes package init
"""
DentalHub Backend: RPC Routes Package
=====================================

Every procedure is exposed as ``POST /rpc/<dotted.name>`` with a JSON body
validated by a Pydantic model and a JSON result serialized through a
response model.

Route Inventory:
    - auth.py:           auth.register, auth.login, auth.me, users.*
    - forum.py:          forum.categories.*, forum.posts.*, forum.comments.*,
                         forum.bookmarks.*
    - cases.py:          cases.*, cases.collaborators.*, cases.files.*
    - notifications.py:  notifications.*
    - dashboard.py:      dashboard.*
    - health.py:         healthcheck (GET and POST), GET /health

Routes stay thin: unpack the body, call one service method, return.
"""
