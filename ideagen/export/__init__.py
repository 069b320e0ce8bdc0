from ideagen.export.bundle import (
    build_zip,
    document_filename,
    ideas_csv,
    slugify,
    usage_csv,
    zip_filename,
)

__all__ = [
    "build_zip",
    "document_filename",
    "ideas_csv",
    "slugify",
    "usage_csv",
    "zip_filename",
]
