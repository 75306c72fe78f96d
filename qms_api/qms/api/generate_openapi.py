"""
Write the OpenAPI document for client generation.

Usage:
    python -m qms.api.generate_openapi [output_path]   # default interfaces/openapi.json
"""
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from qms.api.main import app

DEFAULT_OUTPUT = Path("interfaces") / "openapi.json"


# PUBLIC_INTERFACE
def build_openapi() -> Dict[str, Any]:
    """The app's OpenAPI schema plus the shared error envelope as an `x-` extension."""
    schema = dict(app.openapi())
    schema["x-error-envelope"] = {
        "status": "HTTP status code",
        "error": {"type": "machine-readable code", "message": "text", "details": "e.g. {missing: [...]}"},
        "correlationHeader": "X-Correlation-ID",
    }
    return schema


def main(argv: List[str] | None = None) -> Path:
    args = sys.argv[1:] if argv is None else argv
    output = Path(args[0]) if args else DEFAULT_OUTPUT
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(build_openapi(), indent=2))
    return output


if __name__ == "__main__":
    main()
