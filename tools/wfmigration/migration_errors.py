"""
Errors raised while migrating workflows and activities.

All of them are ValueError subclasses so callers that already guard
against malformed input keep working.
"""


class MigrationError(ValueError):
    """Base class for migration failures"""


class StructuralError(MigrationError):
    """Workflow definition tree has an unsupported shape"""


class NamespaceLookupError(MigrationError):
    """Element prefix cannot be resolved to a code namespace"""


class NoTypeDeclarationError(MigrationError):
    """Migrated source contains no class declaration"""


class ProjectFileError(MigrationError):
    """Expected project file or source file is missing"""
