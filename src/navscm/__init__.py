"""
navscm - Source control for Dynamics NAV objects.

Exports objects from a NAV database into a working copy of text files and
detects drift between the two.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from navscm.core.config.models import NavScmConfig
from navscm.core.objects.models import DatabaseObject, FileObject, NavObjectType, ObjectKey

__all__ = [
    "DatabaseObject",
    "FileObject",
    "NavObjectType",
    "NavScmConfig",
    "ObjectKey",
    "__version__",
]
