"""
PlantLog Backend — Middleware Package

Request → [Request ID] → [Access Log] → [GZip] → [CORS] → route handler

Request ID runs first so the access log line and any error envelope carry it.
"""
