"""In-memory editing of pending schema changes."""

from dbml_toolkit.edit.session import EditSession, FieldProperty

__all__ = ["EditSession", "FieldProperty"]
