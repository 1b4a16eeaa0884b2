"""
Integrations with external data sources.
"""

from library_desk.services.integrations.csv_import_service import (
    ColumnResolver,
    CsvStudentImporter,
    FieldMatch,
    StudentImporter,
    normalize_mobile,
    parse_students,
)

__all__ = [
    "ColumnResolver",
    "CsvStudentImporter",
    "FieldMatch",
    "StudentImporter",
    "normalize_mobile",
    "parse_students",
]
