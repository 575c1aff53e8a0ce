"""
compile_from_json.py — CLI for the pipegraph compiler
=====================================================
Compiles a pipeline JSON file (or a built-in template) into a standalone
Python script plus a requirements.txt listing what that script needs.

Usage
-----
    pipegraph-compile <graph.json> [options]
    pipegraph-compile --template <key> [options]

Options
-------
    --template  <key>   Compile a built-in pipeline instead of a file
                          (document-qa, quick-answer)
    --out       <dir>   Output directory (default: compiled/)
    --print             Print the generated source to stdout instead of writing files
    --threshold <n>     Processing-node count above which a complexity warning is given
    --verbose           Log every compiler step

Examples
--------
    # Compile an editor export:
    pipegraph-compile graphs/document_qa.json --out build/

    # Print the Document Q&A template's generated source:
    pipegraph-compile --template document-qa --print

Exit status is 0 on success and 1 if the pipeline is rejected or the file
can't be read.  Every compiler error is printed to stderr.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from pipegraph.compiler import CompilerConfig, compile_pipeline
from pipegraph.compiler.deserialiser import pipeline_from_file
from pipegraph.compiler.schema import SchemaError
from pipegraph.library.pipelines import PIPELINE_TEMPLATES


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pipegraph-compile",
        description="Compile a pipegraph JSON pipeline to standalone Python.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "graph_json",
        metavar="graph.json",
        nargs="?",
        help="Path to the pipeline JSON file to compile.",
    )
    source.add_argument(
        "--template",
        choices=sorted(PIPELINE_TEMPLATES),
        help="Compile a built-in pipeline template instead of a file.",
    )
    p.add_argument(
        "--out",
        metavar="DIR",
        default="compiled",
        help="Output directory for the .py and requirements.txt files (default: compiled/).",
    )
    p.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print generated source to stdout instead of writing files.",
    )
    p.add_argument(
        "--threshold",
        type=int,
        metavar="N",
        help="Warn when the pipeline has more than N processing nodes.",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Log every compiler step.",
    )
    return p


def _pipeline_name_to_filename(name: str) -> str:
    """Turn 'Document Q&A Pipeline' → 'document_q_a_pipeline.py'."""
    safe = "".join(c if c.isalnum() else "_" for c in name.lower()).strip("_")
    while "__" in safe:
        safe = safe.replace("__", "_")
    return f"{safe or 'pipeline'}.py"


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # ── Load ─────────────────────────────────────────────────────────────────
    if args.template:
        pipeline = PIPELINE_TEMPLATES[args.template]
    else:
        json_path = Path(args.graph_json)
        if not json_path.exists():
            print(f"[error] File not found: {json_path}", file=sys.stderr)
            return 1
        try:
            pipeline = pipeline_from_file(json_path)
        except SchemaError as exc:
            print(f"[error] Schema validation failed: {exc}", file=sys.stderr)
            return 1

    try:
        config = CompilerConfig.from_env()
        if args.threshold is not None:
            config = dataclasses.replace(config, complexity_threshold=args.threshold)
    except ValueError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    # ── Compile ──────────────────────────────────────────────────────────────
    result = compile_pipeline(pipeline, config=config)
    for warning in result.warnings:
        print(f"[warning] {warning}", file=sys.stderr)

    if not result.success:
        for error in result.errors:
            print(f"[error] {error}", file=sys.stderr)
        return 1

    # ── Output ───────────────────────────────────────────────────────────────
    if args.print_only:
        print(result.source_text)
        return 0

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / _pipeline_name_to_filename(pipeline.name)
    out_path.write_text(result.source_text, encoding="utf-8")
    req_path = out_dir / "requirements.txt"
    req_path.write_text("".join(f"{dep}\n" for dep in result.dependency_manifest), encoding="utf-8")

    print(f"[pipegraph-compile] pipeline : {pipeline.name}")
    print(f"[pipegraph-compile] order    : {' -> '.join(result.order)}")
    print(f"[pipegraph-compile] written  : {out_path}")
    print(f"[pipegraph-compile] manifest : {req_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
