"""
Grep-style CI guard: report flowengine/adapters files that read ENABLE_*,
LIVE_LLM or LIVE_HTTP flags directly instead of going through
flowengine.llm_utils.is_live_llm_enabled.

Exit code 0: no matches found
Exit code 1: matches found (prints file:line snippets)
"""
import re
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
ADAPTERS_DIR = ROOT / "flowengine" / "adapters"

PATTERNS = [
    re.compile(r"\bENABLE_\w+\b"),
    re.compile(r"\bLIVE_LLM\b"),
    re.compile(r"\bLIVE_HTTP\b"),
]

IGNORE_FILES = {"__init__.py"}


def find_direct_env_checks(adapters_dir=ADAPTERS_DIR, root=None):
    """Return ``path:line: snippet`` strings for every flag reference."""
    adapters_dir = Path(adapters_dir)
    root = Path(root) if root is not None else adapters_dir
    matches = []
    for p in sorted(adapters_dir.glob("**/*.py")):
        if p.name in IGNORE_FILES:
            continue
        text = p.read_text(encoding="utf-8")
        lines = text.splitlines()
        for pattern in PATTERNS:
            for m in pattern.finditer(text):
                line_no = text.count("\n", 0, m.start()) + 1
                snippet = lines[line_no - 1].strip()
                if snippet.startswith("#"):
                    continue
                matches.append(f"{p.relative_to(root)}:{line_no}: {snippet}")
    return matches


def main(argv=None):
    matches = find_direct_env_checks(ADAPTERS_DIR, ROOT)
    if matches:
        print("Found potential direct live-LLM/env checks in adapters:")
        for m in matches:
            print(m)
        return 1
    print("No direct enablement-env references found in flowengine/adapters.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
