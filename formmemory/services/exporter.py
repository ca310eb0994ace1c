"""Export stored form entries to JSON or Excel."""
import json
from datetime import date, datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional, Union

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from formmemory.domain.exceptions import ExportError
from formmemory.domain.models import StoredEntry

HEADERS = ["Key", "URL", "Saved at", "Field", "Value"]

# Leading characters that make a spreadsheet evaluate text as a formula.
FORMULA_PREFIXES = ("=", "+", "-", "@")


def default_export_filename(extension: str = "json", today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"form-memory-export-{today.isoformat()}.{extension}"


def _saved_at(entry: StoredEntry) -> datetime:
    return datetime.fromtimestamp(entry.saved_at / 1000, tz=timezone.utc).replace(tzinfo=None)


def _append_row(worksheet, values) -> None:
    """Append values as plain data: control characters dropped, formulas kept as text."""
    worksheet.append([ILLEGAL_CHARACTERS_RE.sub("", v) if isinstance(v, str) else v for v in values])
    for cell in worksheet[worksheet.max_row]:
        if isinstance(cell.value, str) and cell.value.startswith(FORMULA_PREFIXES):
            cell.data_type = "s"


def entries_to_json(entries: Dict[str, StoredEntry]) -> str:
    return json.dumps({key: entry.to_dict() for key, entry in entries.items()}, ensure_ascii=False, indent=2)


def entries_to_workbook(entries: Dict[str, StoredEntry]) -> Workbook:
    """One row per stored field."""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Forms"
    worksheet.append(HEADERS)
    for cell in worksheet[1]:
        cell.font = Font(bold=True)

    for key, entry in sorted(entries.items(), key=lambda item: item[1].saved_at, reverse=True):
        if not entry.fields:
            _append_row(worksheet, [key, entry.url, _saved_at(entry), None, None])
            continue
        for field_name, value in entry.fields.items():
            _append_row(worksheet, [key, entry.url, _saved_at(entry), field_name, value])

    for column, width in enumerate((50, 50, 20, 25, 40), start=1):
        worksheet.column_dimensions[get_column_letter(column)].width = width
    worksheet.freeze_panes = "A2"
    return workbook


def workbook_bytes(entries: Dict[str, StoredEntry]) -> BytesIO:
    output = BytesIO()
    entries_to_workbook(entries).save(output)
    output.seek(0)
    return output


def export_entries(entries: Dict[str, StoredEntry], path: Union[str, Path]) -> Path:
    """Write entries to a .json or .xlsx file depending on the suffix."""
    path = Path(path)
    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            path.write_text(entries_to_json(entries), encoding="utf-8")
        elif suffix == ".xlsx":
            entries_to_workbook(entries).save(path)
        else:
            raise ExportError(f"Unsupported export format '{suffix}'; use .json or .xlsx")
    except OSError as e:
        raise ExportError(f"Cannot write export file {path}: {e}")
    return path
