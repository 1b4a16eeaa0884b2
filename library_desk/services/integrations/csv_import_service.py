"""
Student import from the published registration spreadsheet.

The registration form writes to a Google Sheet that is published as CSV.
Column headings drift as the form is edited, so each field is located by
a list of candidate headings run through ordered matchers.
"""

import csv
import io
import re
import time
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

import httpx
from pydantic import ValidationError as PydanticValidationError

from library_desk.config.settings import Settings, get_settings
from library_desk.core.exceptions import ImportSourceError
from library_desk.core.logging import get_logger
from library_desk.schemas.common.enums import StudentStatus
from library_desk.schemas.student import Student
from library_desk.utils.datetime_utils import DateTimeHelper

logger = get_logger(__name__)

# Candidate headings per field, most specific first
FIELD_CANDIDATES: Dict[str, List[str]] = {
    "timestamp": ["Timestamp", "timestamp", "Time", "time", "Date", "date"],
    "email": ["Email Address", "email", "Email", "E-mail", "e-mail"],
    "name": ["Name", "name", "student name", "Student Name"],
    "mobile": ["Mobile Number", "mobile number", "mobile", "Mobile", "phone", "Phone"],
    "parent_name": [
        "Parent's Name", "Parents name", "parents name", "Parents Name",
        "parent name", "Parent Name", "Guardian Name",
    ],
    "parent_mobile": [
        "Parent's Mobile Number", "Parent's number", "parent's number",
        "Parent's mobile number", "parent mobile", "Parent Mobile", "guardian mobile",
    ],
    "address": [
        "Address", "address", "home address", "Home Address",
        "student address", "Student Address",
    ],
    "vehicle_number": [
        "Vehicle Number", "Vehicle number", "vehicle number", "vehicle no",
        "Vehicle No", "bike number", "car number",
    ],
    "photo": [
        "Student Photo", "student photo", "Student photo", "photo", "Photo",
        "image", "student image",
    ],
}

DEFAULT_PARENT_NAME = "Not Provided"


# ============================================================================
# Column matching
# ============================================================================

@dataclass(frozen=True)
class FieldMatch:
    """A non-empty cell located for a candidate heading."""

    column: str
    value: str
    matcher: str


class FieldMatcher:
    """Locates a column in a row for one candidate heading"""

    name = "base"

    def match(self, row: Mapping[str, Optional[str]], candidate: str) -> Optional[FieldMatch]:
        for column in row:
            if column is None or not self.accepts(column, candidate):
                continue
            value = row.get(column)
            if value is not None and str(value).strip() != "":
                return FieldMatch(column=column, value=str(value).strip(), matcher=self.name)
            # First accepted column decides, even when blank
            return None
        return None

    def accepts(self, column: str, candidate: str) -> bool:
        raise NotImplementedError


class ExactMatcher(FieldMatcher):
    name = "exact"

    def accepts(self, column: str, candidate: str) -> bool:
        return column == candidate


class CaseInsensitiveMatcher(FieldMatcher):
    name = "case_insensitive"

    def accepts(self, column: str, candidate: str) -> bool:
        return column.lower() == candidate.lower()


class PartialMatcher(FieldMatcher):
    """Substring match for candidates longer than ``min_length - 1`` characters"""

    name = "partial"

    # candidate -> column words that must not be matched through it
    EXCLUSIONS: Dict[str, Sequence[str]] = {"address": ("email",)}

    def __init__(self, min_length: int = 4):
        self.min_length = min_length

    def accepts(self, column: str, candidate: str) -> bool:
        column_lower = column.lower()
        candidate_lower = candidate.lower()
        if len(candidate_lower) < self.min_length:
            return False
        for excluded in self.EXCLUSIONS.get(candidate_lower, ()):
            if excluded in column_lower:
                return False
        return candidate_lower in column_lower


class ColumnResolver:
    """
    Runs matcher passes over the candidate headings.

    Each pass walks every candidate in order and tries each of its
    matchers; the first hit wins. Partial matching only runs when no
    exact heading produced a value.
    """

    def __init__(self, passes: Optional[Sequence[Sequence[FieldMatcher]]] = None):
        self.passes = passes or (
            (ExactMatcher(), CaseInsensitiveMatcher()),
            (PartialMatcher(),),
        )

    def resolve(self, row: Mapping[str, Optional[str]], candidates: Sequence[str]) -> Optional[FieldMatch]:
        for matchers in self.passes:
            for candidate in candidates:
                for matcher in matchers:
                    found = matcher.match(row, candidate)
                    if found is not None:
                        return found
        return None

    def value(self, row: Mapping[str, Optional[str]], field: str) -> str:
        found = self.resolve(row, FIELD_CANDIDATES[field])
        return found.value if found else ""


# ============================================================================
# Row conversion
# ============================================================================

def normalize_mobile(value: str) -> str:
    """Digits only; a leading ``91`` on a 12-digit number is dropped."""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    return digits


def _row_to_student(
    row: Mapping[str, Optional[str]],
    index: int,
    today: date,
    fee_validity_days: int,
    resolver: ColumnResolver,
) -> Optional[Student]:
    name = resolver.value(row, "name")
    mobile = normalize_mobile(resolver.value(row, "mobile"))
    if not name or not mobile:
        logger.debug("Skipping row without name or mobile", extra={"row": index + 1})
        return None

    registration_date = DateTimeHelper.parse_date_or_default(
        resolver.value(row, "timestamp"), today
    )
    parent_mobile = normalize_mobile(resolver.value(row, "parent_mobile"))

    return Student(
        id=f"csv-{index + 1}",
        name=name,
        mobile=mobile,
        email=resolver.value(row, "email") or None,
        parent_name=resolver.value(row, "parent_name") or DEFAULT_PARENT_NAME,
        parent_mobile=parent_mobile or mobile,
        address=resolver.value(row, "address") or None,
        vehicle_number=resolver.value(row, "vehicle_number") or None,
        photo=resolver.value(row, "photo") or None,
        registration_date=registration_date,
        fee_expiry_date=DateTimeHelper.add_days(registration_date, fee_validity_days),
        status=StudentStatus.ACTIVE,
        total_fees_paid=0,
    )


def parse_students(
    csv_text: str,
    today: date,
    fee_validity_days: int = 30,
    resolver: Optional[ColumnResolver] = None,
) -> List[Student]:
    """
    Convert published CSV text into candidate students.

    Rows without a name or a usable mobile number are skipped. Ids are
    ``csv-{row}`` with rows counted from 1 after the header.
    """
    if not csv_text or not csv_text.strip():
        logger.warning("Empty CSV response")
        return []

    resolver = resolver or ColumnResolver()
    try:
        reader = csv.DictReader(io.StringIO(csv_text.lstrip("\ufeff")))
        if reader.fieldnames:
            reader.fieldnames = [(header or "").strip() for header in reader.fieldnames]
        rows = list(reader)
    except csv.Error as e:
        raise ImportSourceError(f"Failed to parse student data: {e}") from e

    students: List[Student] = []
    for index, row in enumerate(rows):
        try:
            student = _row_to_student(row, index, today, fee_validity_days, resolver)
        except PydanticValidationError as e:
            logger.warning(
                "Skipping invalid row",
                extra={"row": index + 1, "error_count": e.error_count()},
            )
            continue
        if student is not None:
            students.append(student)

    if not students:
        logger.warning("No valid students found in CSV data", extra={"columns": reader.fieldnames})
    else:
        logger.info("Processed students from CSV", extra={"student_count": len(students), "row_count": len(rows)})
    return students


# ============================================================================
# Importers
# ============================================================================

class StudentImporter:
    """Source of candidate students for seeding and refresh"""

    async def fetch_students(self) -> List[Student]:
        raise NotImplementedError


class CsvStudentImporter(StudentImporter):
    """Fetches the published spreadsheet over HTTP"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.url = url or self.settings.IMPORT_CSV_URL
        self._transport = transport

    async def fetch_csv(self) -> str:
        # Cache-busting parameter; published sheets are served through a CDN
        url = httpx.URL(self.url).copy_merge_params({"t": str(int(time.time() * 1000))})
        headers = {"Accept": "text/csv", "Cache-Control": "no-cache"}

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.IMPORT_TIMEOUT_SECONDS,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ImportSourceError(
                f"Failed to fetch student data: HTTP error status {e.response.status_code}",
                endpoint=self.url,
                status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ImportSourceError(
                f"Failed to fetch student data: {e}",
                endpoint=self.url,
            ) from e

        logger.info("CSV response received", extra={"content_length": len(response.text)})
        return response.text

    async def fetch_students(self) -> List[Student]:
        csv_text = await self.fetch_csv()
        return parse_students(
            csv_text,
            today=DateTimeHelper.today(self.settings.TIMEZONE),
            fee_validity_days=self.settings.FEE_VALIDITY_DAYS,
        )


__all__ = [
    "FIELD_CANDIDATES",
    "FieldMatch",
    "FieldMatcher",
    "ExactMatcher",
    "CaseInsensitiveMatcher",
    "PartialMatcher",
    "ColumnResolver",
    "normalize_mobile",
    "parse_students",
    "StudentImporter",
    "CsvStudentImporter",
]
