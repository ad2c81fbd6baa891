# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import record, credential

# Explicit class exports for cleaner imports
from .record import Record
from .credential import Credential, UserSession

__all__ = [
    "Record",
    "Credential",
    "UserSession",
]
