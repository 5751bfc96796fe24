# Schemas package init
"""
DentalHub Backend: API Schemas Package
======================================

Pydantic models defining the RPC contract, one module per domain:

    common.py        pagination, error envelope, health payloads
    user.py          registration, login, profiles
    forum.py         categories, posts, comments, votes, bookmarks
    case.py          cases, collaborators, files, annotations
    notification.py  notifications, activity feed, dashboard stats

Schemas are separate from the SQLAlchemy models so the wire contract (for
example, never exposing password hashes) can differ from storage.
"""
