"""
Services Module

Business logic behind the REST routers:
- identity: registration, login, token rotation, account management
- social_graph: follow edges, follower/following lists, profiles
- content: chirps, rechirps, likes, comments
- feed: paginated, enriched chirp lists
- media: object storage delegate (S3-compatible)
- uploads: local staging of multipart files
"""
