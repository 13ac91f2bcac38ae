from unidocs.models.document import ApprovalStatus, Document, DocumentType  # noqa: F401
from unidocs.models.university_body import (  # noqa: F401
    UniversityBody,
    UniversityBodyType,
)
from unidocs.models.user import User, UserRole  # noqa: F401
