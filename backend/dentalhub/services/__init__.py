# Services package init
"""
DentalHub Backend: Services Layer
=================================

Business logic between the RPC routes and the database. Every service is a
stateless singleton whose methods take the request's ``AsyncSession`` first.

Service Inventory:
    - AuthService:          registration, login, user lookups
    - ForumService:         categories, posts, comments, votes, bookmarks
    - CaseService:          cases, collaborators, files, annotations
    - CaseFileService:      file descriptor validation and URL generation
    - NotificationService:  per-user inbox
    - DashboardService:     platform statistics and the activity feed

Services flush, never commit; ``get_db_session`` commits once per request.
"""
