# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

import csv, io, json, locale, logging
from pathlib import Path
from typing import Dict, List, Sequence

import yaml

from .errors import ConfigError
from .rows import COLUMNS, OutputRow

LOG = logging.getLogger("admx_csv")
FORMATS = ("csv", "json", "yaml")
DEFAULT_ENCODING = "utf-8-sig"


def culture_delimiter() -> str:
    """List separator matching the user's locale: `;` where `,` is the decimal mark."""
    try:
        locale.setlocale(locale.LC_NUMERIC, "")
    except locale.Error as exc:
        LOG.debug(f"Unable to apply user locale: {exc}")
        return ","
    return ";" if locale.localeconv().get("decimal_point") == "," else ","


def _records(rows: Sequence[OutputRow]) -> List[Dict[str, str]]:
    return [row.as_dict() for row in rows]


def serialize_csv(rows: Sequence[OutputRow], *, delimiter: str = ",") -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, delimiter=delimiter, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(COLUMNS)
    for row in rows:
        writer.writerow(row.values())
    return buffer.getvalue()


def serialize_rows(rows: Sequence[OutputRow], *, fmt: str = "csv", delimiter: str = ",") -> str:
    if fmt == "csv":
        return serialize_csv(rows, delimiter=delimiter)
    if fmt == "json":
        return json.dumps(_records(rows), indent=2, ensure_ascii=False)
    if fmt == "yaml":
        return yaml.safe_dump(
            _records(rows),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
    raise ValueError(f"Unknown output format '{fmt}', expected one of {', '.join(FORMATS)}")


def write_rows(
    path: Path,
    rows: Sequence[OutputRow],
    *,
    fmt: str = "csv",
    delimiter: str = ",",
    encoding: str = DEFAULT_ENCODING,
) -> None:
    serialized = serialize_rows(rows, fmt=fmt, delimiter=delimiter)
    # nothing is written unless the whole report encodes
    try:
        data = serialized.encode(encoding)
    except UnicodeEncodeError as exc:
        raise ConfigError(
            f"Encoding '{encoding}' cannot represent {exc.object[exc.start]!r} in the report",
            "Use a Unicode encoding such as utf-8-sig or utf-16.",
        ) from exc
    except LookupError as exc:
        raise ConfigError(f"Unknown encoding '{encoding}'") from exc
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
