# datavista_app/models/__init__.py
# -*- coding: utf-8 -*-
from .user import User
from .upload_record import UploadRecord
from .dashboard import Dashboard
from .blog import BlogArticle
from .audit import AuditLog


__all__ = [
    "User",
    "UploadRecord",
    "Dashboard",
    "BlogArticle",
    "AuditLog",
]
