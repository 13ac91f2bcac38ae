from prometheus_client import Counter

DOCUMENT_UPLOADS = Counter(
    "unidocs_document_uploads_total",
    "Documents uploaded, by uploader role",
    ["role"],
)
DOCUMENT_REVIEWS = Counter(
    "unidocs_document_reviews_total",
    "Approve/reject decisions recorded",
    ["decision"],
)
DOCUMENT_DOWNLOADS = Counter(
    "unidocs_document_downloads_total",
    "Document downloads served",
)
