from . import admin, auth, curriculums, favorites, notifications, users, videos

__all__ = ["admin", "auth", "curriculums", "favorites", "notifications", "users", "videos"]
