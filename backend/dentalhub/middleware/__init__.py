# Middleware package init
"""
DentalHub Backend: Middleware Package
=====================================

Middleware chain (outermost first):

    Request → [Request ID] → [Logging] → [GZip] → [CORS] → RPC procedure

Responses travel the chain in reverse, so the request id header is added
last and the access log sees the final status code.
"""
