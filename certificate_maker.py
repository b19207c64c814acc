import argparse
import json
import logging
import sys
from pathlib import Path

from cert_errors import CertificateError
from cert_export import ExportFormat
from cert_layout import dump_layout, load_layout
from cert_records import load_records, record_from_mapping, sample_csv
from cert_session import CertificateSession
from cert_settings import get_settings
from cert_templates import TemplateId


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compose certificates from a template, styled fields and optional signature/seal images."
    )
    parser.add_argument("--csv", dest="csv_path", help="Path to CSV file with certificate records.")
    parser.add_argument("--data-json", help="Path to JSON file with a single certificate record.")
    parser.add_argument("--layout", help="Path to layout JSON (positions / fontStyles overrides).")
    parser.add_argument(
        "--template",
        choices=[t.value for t in TemplateId],
        help="Background template (default template1, or custom when --custom-template is given).",
    )
    parser.add_argument("--custom-template", help="Image or PDF file used as the custom background.")
    parser.add_argument("--signature", help="Signature image file.")
    parser.add_argument("--seal", help="Seal/logo image file.")
    parser.add_argument(
        "--format",
        default=ExportFormat.PNG.value,
        choices=[f.value for f in ExportFormat],
        help="Output format for each certificate.",
    )
    parser.add_argument(
        "--output",
        help="Output file (single) or directory for the archive (--batch). Defaults to CERT_OUTPUT_DIR.",
    )
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Generate certificates for all CSV rows into one ZIP archive.",
    )
    parser.add_argument(
        "--merge-pdf",
        action="store_true",
        help="With --batch, write one multi-page PDF instead of a ZIP archive.",
    )
    parser.add_argument("--workers", type=int, default=None, help="Parallel rasterization workers for --batch.")
    parser.add_argument(
        "--sample-csv",
        action="store_true",
        help="Print a CSV template with the required columns and exit.",
    )
    parser.add_argument(
        "--dump-layout",
        action="store_true",
        help="Print the effective layout JSON and exit.",
    )
    return parser.parse_args(argv)


def build_session(args: argparse.Namespace) -> CertificateSession:
    layout = load_layout(Path(args.layout)) if args.layout else None
    session = CertificateSession(layout=layout)
    if args.custom_template:
        session.set_custom_template(Path(args.custom_template))
    if args.template:
        session.select_template(args.template)
    if args.template == TemplateId.CUSTOM.value and not args.custom_template:
        print("[WARN] --template custom without --custom-template. Using template1.")
    if args.signature:
        session.set_signature(Path(args.signature))
    if args.seal:
        session.set_seal(Path(args.seal))
    return session


def _progress(index: int, total: int, record) -> None:
    print(f"  [{index}/{total}] {record.recipient_name}")


def run(args: argparse.Namespace) -> Path | None:
    if args.sample_csv:
        print(sample_csv())
        return None

    session = build_session(args)
    if args.dump_layout:
        print(json.dumps(dump_layout(session.layout), indent=2))
        return None

    if args.csv_path and args.data_json:
        raise ValueError("Use either --csv or --data-json, not both.")
    if args.merge_pdf and not args.batch:
        raise ValueError("--merge-pdf requires --batch")

    settings = get_settings()
    if args.batch:
        if not args.csv_path:
            raise ValueError("--batch requires --csv")
        session.batch_records = load_records(Path(args.csv_path))
        print(f"Generating {len(session.batch_records)} certificates...")
        if args.merge_pdf:
            artifact = session.export_combined_pdf(workers=args.workers, progress=_progress)
        else:
            artifact = session.export_batch(args.format, workers=args.workers, progress=_progress)
        output_dir = Path(args.output) if args.output else settings.output_dir
        output_path = output_dir / artifact.filename
    else:
        if args.data_json:
            data = json.loads(Path(args.data_json).read_text(encoding="utf-8"))
            session.record = record_from_mapping(data)
        elif args.csv_path:
            session.record = load_records(Path(args.csv_path))[0]
        artifact = session.export(args.format)
        output_path = Path(args.output) if args.output else settings.output_dir / artifact.filename

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(artifact.data)
    print(f"Wrote: {output_path}")
    return output_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        run(args)
    except (CertificateError, ValueError, OSError) as exc:
        print(f"[FAIL] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
