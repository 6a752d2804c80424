"""Command-line interface for envelope extraction and CSV export.

Provides subcommands for extracting one envelope from its face images,
re-running extraction on already recognized text, and processing a folder
of envelopes into a CSV report.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from koden_ocr.extraction.models import (
    BACK,
    FACES,
    FRONT,
    INNER_BACK,
    INNER_FRONT,
    ExtractionResult,
)
from koden_ocr.extraction.numerals import to_kanji_numeral
from koden_ocr.extraction.pipeline import EnvelopeExtractor
from koden_ocr.ocr.envelope_processor import EnvelopeProcessor
from koden_ocr.utils.config import AppConfig, load_config
from koden_ocr.utils.logger import get_logger, setup_logging
from koden_ocr.validation.rules_engine import RulesEngine, ValidationReport

logger = get_logger(__name__)

_SUPPORTED_SUFFIXES = (".png", ".jpg", ".jpeg", ".tiff", ".tif", ".pdf")

# File stems recognized inside an envelope folder, lowercased.
FACE_FILE_STEMS: dict[str, str] = {
    "front": FRONT,
    "back": BACK,
    "inner_front": INNER_FRONT,
    "innerfront": INNER_FRONT,
    "inner_back": INNER_BACK,
    "innerback": INNER_BACK,
}

_META_COLUMNS = [
    "envelope",
    "status",
    "processing_time_s",
    "validation_passed",
    "error",
]

# Report columns keyed by record field.
REPORT_COLUMNS: dict[str, str] = {
    "organization_name": "Company Name",
    "personal_name": "Full Name",
    "title": "Position",
    "address": "Address",
    "amount": "Amount",
    "enclosed_amount": "Inner Amount",
    "donation_type": "Donation Type",
    "donation_category": "Donation Category",
    "notes": "Notes",
}


def find_face_files(envelope_dir: Path) -> dict[str, Path]:
    """Map the face images in one envelope folder to their faces.

    Args:
        envelope_dir: Folder holding ``front.jpg``, ``back.png`` and so on.

    Returns:
        Face identifier to file path; unrecognized files are ignored.
    """
    faces: dict[str, Path] = {}
    for path in sorted(envelope_dir.iterdir()):
        if not path.is_file() or path.suffix.lower() not in _SUPPORTED_SUFFIXES:
            continue
        face = FACE_FILE_STEMS.get(path.stem.lower())
        if face is None:
            logger.debug("Ignoring %s", path.name)
            continue
        if face in faces:
            logger.warning("Duplicate %s image in %s: %s", face, envelope_dir, path.name)
            continue
        faces[face] = path
    return faces


def _find_envelopes(input_dir: Path) -> list[Path]:
    return sorted(p for p in input_dir.iterdir() if p.is_dir())


def build_payload(
    result: ExtractionResult,
    validation: ValidationReport,
    failures: dict[str, str] | None = None,
) -> dict[str, object]:
    """Assemble the JSON document printed for one envelope."""
    return {
        "record": result.to_record(),
        "donation_type": {
            "type": result.donation_type.type,
            "category": result.donation_type.category,
            "confidence": result.donation_type.confidence,
            "position": result.donation_type.position,
        },
        "sources": result.sources(),
        "failed_faces": failures or {},
        "validation": {
            "passed": validation.all_valid,
            "warnings": validation.warnings,
            "failures": [r.message for r in validation.failures()],
        },
    }


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process every envelope folder under ``input_dir`` and export a CSV.

    Args:
        input_dir: Directory with one subdirectory per envelope.
        output_csv: Path for the output CSV file.
        config: Application configuration. Loaded from disk when omitted.
        verbose: Whether to print per-envelope progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = config or load_config()
    processor = EnvelopeProcessor(config)
    validator = RulesEngine(Path(config.validation.rules_path))

    envelopes = _find_envelopes(input_dir)
    if not envelopes:
        logger.warning("No envelope folders found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d envelopes to process", len(envelopes))

    rows: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, envelope_dir in enumerate(envelopes, 1):
        if verbose:
            print(f"Processing [{i}/{len(envelopes)}]: {envelope_dir.name}")

        start_time = time.time()
        try:
            row = _process_envelope(envelope_dir, processor, validator)
            row["processing_time_s"] = round(time.time() - start_time, 2)
            rows.append(row)
            successful += 1
            if verbose:
                print(f"  {_describe(row)}")
        except (OSError, RuntimeError, ValueError) as exc:
            logger.error("Failed to process %s: %s", envelope_dir.name, exc)
            rows.append(
                {
                    "envelope": envelope_dir.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(envelopes), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _process_envelope(
    envelope_dir: Path,
    processor: EnvelopeProcessor,
    validator: RulesEngine,
) -> dict[str, object]:
    """Run recognition, extraction and validation for one envelope folder."""
    faces = find_face_files(envelope_dir)
    if not faces:
        raise ValueError(f"No face images found in {envelope_dir}")

    scan, result = processor.process(faces)
    if not scan.face_text:
        raise RuntimeError(
            "All faces failed: " + "; ".join(f"{k}: {v}" for k, v in scan.failures.items())
        )
    validation = validator.validate(result.to_record())

    row: dict[str, object] = {
        "envelope": envelope_dir.name,
        "status": "partial" if scan.failures else "success",
        "validation_passed": validation.all_valid,
        "error": "; ".join(f"{k}: {v}" for k, v in scan.failures.items()) or None,
    }
    record = result.to_record()
    for key, column in REPORT_COLUMNS.items():
        row[column] = record[key]
    return row


def write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write envelope rows to a CSV file readable by spreadsheet software.

    Args:
        rows: List of row dictionaries.
        output_path: Path for the output CSV file.
    """
    if not rows:
        return

    all_keys: set[str] = set()
    for r in rows:
        all_keys.update(r.keys())

    columns = [c for c in _META_COLUMNS if c in all_keys] + list(REPORT_COLUMNS.values())

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _describe(row: dict[str, object]) -> str:
    """Summarize a row with the amount in kanji, as written on envelopes."""
    donor = row.get("Full Name") or row.get("Company Name") or "(no name)"
    amount = str(row.get("Amount") or "")
    if not amount.isdigit():
        return f"{donor}: no amount"
    return f"{donor}: 金{to_kanji_numeral(int(amount))}円 ({amount})"


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout."""
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    faces: dict[str, Path], config: AppConfig | None = None
) -> dict[str, object]:
    """Recognize one envelope's face images and return the structured result.

    Args:
        faces: Face identifier to image path.
        config: Application configuration. Loaded from disk when omitted.

    Returns:
        JSON-ready dictionary with the record, sources and validation.
    """
    config = config or load_config()
    processor = EnvelopeProcessor(config)
    validator = RulesEngine(Path(config.validation.rules_path))

    scan, result = processor.process(faces)
    validation = validator.validate(result.to_record())
    return build_payload(result, validation, scan.failures)


def extract_from_text(
    faces: dict[str, Path], config: AppConfig | None = None
) -> dict[str, object]:
    """Run extraction on already recognized text files, skipping OCR.

    Args:
        faces: Face identifier to UTF-8 text file path.
        config: Application configuration. Loaded from disk when omitted.
    """
    config = config or load_config()
    extractor = EnvelopeExtractor(config.extraction)
    validator = RulesEngine(Path(config.validation.rules_path))

    face_text = {face: path.read_text(encoding="utf-8") for face, path in faces.items()}
    result = extractor.extract(face_text)
    validation = validator.validate(result.to_record())
    return build_payload(result, validation)


def _add_face_arguments(parser: argparse.ArgumentParser, what: str) -> None:
    parser.add_argument("--front", type=Path, help=f"Envelope front {what}")
    parser.add_argument("--back", type=Path, help=f"Envelope back {what}")
    parser.add_argument(
        "--inner-front", type=Path, dest="inner_front", help=f"Inner envelope front {what}"
    )
    parser.add_argument(
        "--inner-back", type=Path, dest="inner_back", help=f"Inner envelope back {what}"
    )
    parser.add_argument("-o", "--output", type=Path, help="Output JSON file")


def _collect_faces(args: argparse.Namespace) -> dict[str, Path]:
    given = {
        FRONT: args.front,
        BACK: args.back,
        INNER_FRONT: args.inner_front,
        INNER_BACK: args.inner_back,
    }
    return {face: given[face] for face in FACES if given[face] is not None}


def _emit(payload: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Condolence Envelope OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="Configuration YAML file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser(
        "batch", help="Process a folder of envelope folders"
    )
    batch_parser.add_argument(
        "input_dir", type=Path, help="Directory with one subdirectory per envelope"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser(
        "extract", help="Process the face images of one envelope"
    )
    _add_face_arguments(single_parser, "image")

    text_parser = subparsers.add_parser(
        "text", help="Extract fields from already recognized text files"
    )
    _add_face_arguments(text_parser, "text file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    # stdout carries the JSON payload.
    setup_logging(config.log_level, stream=sys.stderr)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.verbose)
    elif args.command in ("extract", "text"):
        faces = _collect_faces(args)
        if not faces:
            print("Error: at least one face must be given", file=sys.stderr)
            sys.exit(1)
        missing = [str(p) for p in faces.values() if not p.exists()]
        if missing:
            print(f"Error: {', '.join(missing)} does not exist", file=sys.stderr)
            sys.exit(1)
        if args.command == "extract":
            payload = extract_single(faces, config)
        else:
            payload = extract_from_text(faces, config)
        _emit(payload, args.output)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
