"""
CSV codec.

Files are read as a header row followed by records. When the header has
exactly two columns the file is taken to be a flat ``key,value`` listing and
decodes to a mapping of first column to second column. This is a heuristic:
a genuine two-column table is read as a mapping too. Every other file
decodes to ``{"records": [...]}``.
"""

import csv
import io
import logging
from typing import Any, Dict, List

from ..errors import ParseError, SaveError
from ..models import Format
from .base import Codec, is_scalar, scalar_text

logger = logging.getLogger(__name__)


class CsvCodec(Codec):
    """CSV files via the csv module."""

    format = Format.CSV

    def decode(self, raw: bytes) -> Dict[str, Any]:
        text = self._text(raw)
        reader = csv.reader(io.StringIO(text, newline=""))

        header: List[str] = []
        records: List[Dict[str, str]] = []
        try:
            for row in reader:
                if not row:
                    continue
                if not header:
                    header = row
                    continue
                if len(row) != len(header):
                    raise ParseError(
                        self.format.value,
                        f"record has {len(row)} fields but the header has {len(header)}",
                        line_number=reader.line_num
                    )
                records.append(dict(zip(header, row)))
        except csv.Error as e:
            raise ParseError(self.format.value, str(e), line_number=reader.line_num) from e

        if records and len(records[0]) == 2:
            key_column, value_column = records[0].keys()
            return {record[key_column]: record[value_column] for record in records}

        return {"records": records}

    def encode(self, document: Any) -> bytes:
        rows = self._rows(document)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerows(rows)
        return buffer.getvalue().encode("utf-8")

    def _rows(self, document: Any) -> List[List[str]]:
        if isinstance(document, dict) and all(is_scalar(v) for v in document.values()):
            rows = [[self.settings.csv_key_header, self.settings.csv_value_header]]
            rows.extend([str(key), scalar_text(value)] for key, value in document.items())
            return rows

        if isinstance(document, dict) and isinstance(document.get("records"), list):
            dropped = [key for key in document if key != "records"]
            if dropped:
                logger.warning(f"CSV export keeps only 'records'; dropping keys: {', '.join(dropped)}")
            return self._table(document["records"])

        raise SaveError(
            "unsupported structure for csv export",
            suggestion="CSV holds either a flat mapping of scalars or a 'records' list of flat mappings"
        )

    def _table(self, records: List[Any]) -> List[List[str]]:
        columns: List[str] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict) or not all(is_scalar(v) for v in record.values()):
                raise SaveError(f"records[{index}] is not a flat mapping of scalars")
            for key in record:
                if key not in columns:
                    columns.append(key)

        rows = [list(columns)]
        rows.extend([scalar_text(record.get(column)) for column in columns] for record in records)
        return rows
