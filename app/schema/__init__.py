"""Schema package exports."""

from .catalog import CatalogVideo, CategoryRef, CurriculumRef, PerformerRef
from .sql import AuditAction, Base, UserRole, UserStatus

__all__ = ["AuditAction", "Base", "CatalogVideo", "CategoryRef", "CurriculumRef", "PerformerRef", "UserRole", "UserStatus"]
