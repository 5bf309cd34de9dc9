"""
Render an agreement request JSON to a local PDF (or HTML with --html) for
checking template changes without going through S3.

Usage:
  cd backend
  python3 scripts/render_sample_agreement.py [request.json] [-o out.pdf] [--html]
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from models import AgreementRequest
from reporting.agreement_builder import build_agreement_html, build_agreement_pdf
from services.normalizer import today_au

SAMPLE_REQUEST = BACKEND_DIR / "tests" / "fixtures" / "sample_agreement.json"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("request", nargs="?", default=str(SAMPLE_REQUEST), help="Agreement request JSON")
    parser.add_argument("-o", "--output", default=None, help="Output path (default: service-agreement.pdf/.html)")
    parser.add_argument("--html", action="store_true", help="Write the filled HTML instead of a PDF")
    args = parser.parse_args(argv)

    payload = json.loads(Path(args.request).read_text(encoding="utf-8"))
    request = AgreementRequest.model_validate(payload)
    suffix = ".html" if args.html else ".pdf"
    out_path = Path(args.output or f"service-agreement{suffix}").resolve()

    if args.html:
        out_path.write_text(build_agreement_html(request, today=today_au()), encoding="utf-8")
    else:
        out_path.write_bytes(build_agreement_pdf(request, today=today_au()))
    print(f"Agreement saved to: {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
