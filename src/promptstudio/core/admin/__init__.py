"""System administration core domain."""

from promptstudio.core.admin.service import SystemAdministration

__all__ = ["SystemAdministration"]
