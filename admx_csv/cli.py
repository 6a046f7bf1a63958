# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

import argparse, logging
from pathlib import Path
from typing import Optional, Sequence

from .config import POLICY_CLASSES, Settings, build_settings, load_config
from .errors import ConfigError
from .loader import default_vendor_paths, discover_sources, iter_documents, load_vendor_documents
from .output import FORMATS, culture_delimiter, write_rows
from .rows import RowEmitter, RunReport, convert

LOG = logging.getLogger("admx_csv")


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="admx-csv",
        description="Flatten Windows ADMX/ADML policy definitions into a CSV report.",
    )
    parser.add_argument(
        "-d",
        "--definitions",
        type=Path,
        help="Path to the PolicyDefinitions directory. Defaults to C:\\Windows\\PolicyDefinitions.",
    )
    parser.add_argument(
        "-l",
        "--language",
        help="Language folder holding the ADML files. Defaults to en-US.",
    )
    parser.add_argument(
        "--vendor",
        dest="vendors",
        action="append",
        metavar="KEY=PATH",
        help="Vendor ADML used for 'KEY:' supported-on references (can be added multiple times).",
    )
    parser.add_argument(
        "-i",
        "--ignore",
        dest="ignored_admx",
        action="append",
        help="ADMX base name to ignore (without extension).",
    )
    parser.add_argument(
        "--class",
        dest="class_filter",
        choices=POLICY_CLASSES,
        action="append",
        help="Limit output to the supplied policy class. Can be specified multiple times.",
    )
    parser.add_argument(
        "--policy",
        dest="policy_filter",
        help="Filter policies whose internal or display name contains this string (case insensitive).",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        help="Output format. Defaults to csv.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Path of the report. Defaults to Policies.<format>.",
    )
    parser.add_argument(
        "--delimiter",
        help="CSV field delimiter. Defaults to ','.",
    )
    parser.add_argument(
        "--use-culture",
        action="store_true",
        default=None,
        help="Pick the CSV delimiter from the current locale (';' where ',' is the decimal mark).",
    )
    parser.add_argument(
        "--encoding",
        help="Output file encoding. Defaults to utf-8-sig.",
    )
    parser.add_argument(
        "--hive",
        action="store_true",
        default=None,
        help="Prefix registry keys with HKLM/HKCU according to the policy class.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file supplying defaults for any of the options above.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every skipped file and vendor load.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings.")
    return parser


def run(settings: Settings) -> RunReport:
    definitions = settings.definitions.expanduser().resolve()
    if not definitions.is_dir():
        raise ConfigError(
            f"Definitions path '{definitions}' was not found.",
            "Point --definitions at a PolicyDefinitions folder containing *.admx files.",
        )
    vendor_paths = default_vendor_paths(definitions, settings.language)
    vendor_paths.update(settings.vendors)
    vendors = load_vendor_documents(vendor_paths)

    emitter = RowEmitter(
        vendors,
        hive_prefix=settings.hive,
        class_filter=settings.classes,
        policy_filter=settings.policy,
    )
    pairs = discover_sources(definitions, settings.language, settings.ignore)
    sources = ((pair.admx_path.name, document, resources) for pair, document, resources in iter_documents(pairs))
    return convert(sources, emitter=emitter)


def print_summary(report: RunReport) -> None:
    if not report.rows:
        return
    summary = ", ".join(f"{key}: {count}" for key, count in report.class_summary().items())
    print()
    print(f"Policies: {report.total_policies}")
    print(f"By Class: {summary}")
    if report.diagnostics:
        print(f"Skipped policies: {len(report.diagnostics)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")

    try:
        config = load_config(args.config) if args.config else {}
        settings = build_settings(args, config)
        report = run(settings)
        delimiter = settings.delimiter
        if delimiter is None:
            delimiter = culture_delimiter() if settings.use_culture else ","
        output_path = settings.output_path()
        write_rows(output_path, report.rows, fmt=settings.format, delimiter=delimiter, encoding=settings.encoding)
    except ConfigError as exc:
        LOG.error(str(exc))
        return 2

    LOG.info(f"Total: {report.total_rows} rows, {report.total_policies} policies, {len(report.diagnostics)} skipped")
    print(f"Wrote {report.total_rows} rows ({report.total_policies} policies) to {output_path}")
    print_summary(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
